from datetime import timedelta

import pytest

from src.lifeevents.core.errors import InvalidReference
from src.lifeevents.events.ledger import EventLedger
from src.lifeevents.events.model import EffectType, EventResult


def test_allocate_id_is_monotonic_per_ledger():
    first, second = EventLedger(), EventLedger()
    assert [first.allocate_id() for _ in range(3)] == [1, 2, 3]
    assert second.allocate_id() == 1
    assert first.next_id == 4


def test_archive_moves_event_between_collections(ledger, make_event, now):
    ledger.add_active(make_event(1))
    ledger.add_active(make_event(2))

    archived = ledger.archive(1, EventResult.DECLINED, now, choice_label="Pass", realized={EffectType.CASH: 0})

    assert 1 not in ledger.active
    assert ledger.history == [archived]
    assert archived.result is EventResult.DECLINED
    assert archived.choice_label == "Pass"
    assert archived.completed_at == now
    assert list(ledger.active) == [2]


def test_archive_unknown_id_raises_without_mutation(ledger, make_event, now):
    ledger.add_active(make_event(1))
    with pytest.raises(InvalidReference):
        ledger.archive(99, EventResult.SUCCESS, now)
    assert list(ledger.active) == [1]
    assert ledger.history == []


def test_terminal_result_cannot_be_overwritten(ledger, make_event, now):
    event = make_event(1)
    ledger.add_active(event)
    ledger.archive(1, EventResult.SUCCESS, now)

    with pytest.raises(ValueError):
        ledger.record(event, EventResult.EXPIRED, now)
    assert event.result is EventResult.SUCCESS
    assert len(ledger.history) == 1


def test_record_refuses_active_events(ledger, make_event, now):
    event = make_event(1)
    ledger.add_active(event)
    with pytest.raises(ValueError):
        ledger.record(event, EventResult.AUTO, now)


def test_history_is_newest_first_and_capped(make_event, now):
    ledger = EventLedger(history_limit=50)
    for event_id in range(1, 61):
        ledger.add_active(make_event(event_id))
        ledger.archive(event_id, EventResult.DECLINED, now)

    assert len(ledger.history) == 50
    assert ledger.history[0].id == 60
    assert ledger.history[-1].id == 11


def test_sweep_expires_only_past_events_and_keeps_order(ledger, make_event, now):
    ledger.add_active(make_event(1, expires_at=now + timedelta(minutes=10)))
    ledger.add_active(make_event(2, expires_at=now - timedelta(seconds=1)))
    ledger.add_active(make_event(3, expires_at=now + timedelta(minutes=5)))
    ledger.add_active(make_event(4, expires_at=now))

    expired = ledger.sweep_expired(now)

    assert [e.id for e in expired] == [2, 4]
    assert all(e.result is EventResult.EXPIRED for e in expired)
    assert list(ledger.active) == [1, 3]


def test_expired_batch_lands_in_history_in_active_order(ledger, make_event, now):
    ledger.add_active(make_event(9))
    ledger.archive(9, EventResult.DECLINED, now)
    for event_id in (2, 3, 4):
        ledger.add_active(make_event(event_id, expires_at=now - timedelta(minutes=1)))

    ledger.sweep_expired(now)

    assert [e.id for e in ledger.history] == [2, 3, 4, 9]


def test_expired_batch_respects_history_cap(make_event, now):
    ledger = EventLedger(history_limit=3)
    ledger.add_active(make_event(1))
    ledger.archive(1, EventResult.DECLINED, now)
    for event_id in (2, 3, 4):
        ledger.add_active(make_event(event_id, expires_at=now))

    ledger.sweep_expired(now)

    assert [e.id for e in ledger.history] == [2, 3, 4]


def test_sweep_is_idempotent(ledger, make_event, now):
    ledger.add_active(make_event(1, expires_at=now - timedelta(minutes=1)))
    ledger.add_active(make_event(2, expires_at=now + timedelta(minutes=1)))

    ledger.sweep_expired(now)
    active_after_first = list(ledger.active)
    history_after_first = [(e.id, e.result, e.completed_at) for e in ledger.history]

    assert ledger.sweep_expired(now) == []
    assert list(ledger.active) == active_after_first
    assert [(e.id, e.result, e.completed_at) for e in ledger.history] == history_after_first
