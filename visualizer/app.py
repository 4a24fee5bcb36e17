import sys
from pathlib import Path
import threading
from typing import Dict, Any, Optional

# Add the project root to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask, jsonify, request

from src.lifeevents.core.clock import FixedClock
from src.lifeevents.core.errors import InvalidChoiceIndex, InvalidReference
from src.lifeevents.core.ids import EventId
from src.lifeevents.core.player import PlayerSnapshot
from src.lifeevents.core.rng import get_seeded_rng
from src.lifeevents.core.sim import EventEngine
from src.lifeevents.events.model import Category
from src.lifeevents.io.save_load import instance_to_dict
from src.lifeevents.reports.feed import format_realized


app = Flask(__name__)

DEFAULT_SEED = 40

session_controller = None


class SessionController:
    """One player's ledger, snapshot, clock and RNG behind a lock."""

    def __init__(self, seed: int = DEFAULT_SEED):
        self._lock = threading.RLock()
        self.seed = seed
        self.clock = FixedClock()
        self.engine = EventEngine(clock=self.clock)
        self.ledger = self.engine.new_ledger()
        self.snapshot = PlayerSnapshot(level=1, heat=10, cash=1000, energy=100, health=100)
        self.rng = get_seeded_rng(seed)

    def lock(self):
        return self._lock

    def state(self) -> Dict[str, Any]:
        with self._lock:
            now = self.clock.now()
            active = self.engine.list_active(self.ledger, now)
            return {
                "active": [instance_to_dict(i) for i in active],
                "history": [instance_to_dict(i) for i in self.engine.list_history(self.ledger)],
                "snapshot": self.snapshot.to_dict(),
                "meta": {
                    "now": now.isoformat(),
                    "seed": self.seed,
                    "catalog_version": self.engine.catalog.version,
                },
            }

    def tick(self, minutes: int) -> Dict[str, Any]:
        with self._lock:
            now = self.clock.advance(minutes=minutes)
            report = self.engine.tick(self.ledger, self.snapshot, now, self.rng)
            return {
                "spawned": instance_to_dict(report.spawned) if report.spawned else None,
                "expired": [i.id for i in report.expired],
                "log": [entry.reason for entry in report.log.entries if entry.reason],
            }

    def force(self, category: Optional[Category]) -> Dict[str, Any]:
        with self._lock:
            now = self.clock.now()
            report = self.engine.force_generate(self.ledger, self.snapshot, now, self.rng, category=category)
            return {"spawned": instance_to_dict(report.spawned) if report.spawned else None}

    def resolve(self, event_id: EventId, choice_index: int) -> Dict[str, Any]:
        with self._lock:
            now = self.clock.now()
            resolution = self.engine.resolve_choice(
                self.ledger, event_id, choice_index, self.snapshot, self.rng, now=now
            )
            outcome = resolution.outcome
            return {
                "event_id": outcome.event_id,
                "result": outcome.result.value,
                "choice_label": outcome.choice_label,
                "message": format_realized(outcome.realized),
                "snapshot": self.snapshot.to_dict(),
            }


def _initialize_session(seed: int = DEFAULT_SEED):
    global session_controller
    session_controller = SessionController(seed)


@app.before_request
def before_first_request():
    if session_controller is None:
        _initialize_session()


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.route('/events/state')
def events_state():
    return jsonify(session_controller.state())


@app.route('/events/tick', methods=['POST'])
def events_tick():
    data = _json_body()
    try:
        minutes = max(0, int(data.get("minutes", 5)))
    except (TypeError, ValueError):
        return jsonify({"error": f"Invalid minutes '{data.get('minutes')}'"}), 400
    payload = session_controller.tick(minutes)
    payload["status"] = "ticked"
    return jsonify(payload)


@app.route('/events/force', methods=['POST'])
def events_force():
    data = _json_body()
    category = None
    if data.get("category"):
        try:
            category = Category(data["category"])
        except ValueError:
            return jsonify({"error": f"Unknown category '{data['category']}'"}), 400
    return jsonify(session_controller.force(category))


@app.route('/events/resolve', methods=['POST'])
def events_resolve():
    data = _json_body()
    if "event_id" not in data or "choice_index" not in data:
        return jsonify({"error": "Missing event_id or choice_index"}), 400
    try:
        event_id = EventId(int(data["event_id"]))
        choice_index = int(data["choice_index"])
    except (TypeError, ValueError):
        return jsonify({"error": "event_id and choice_index must be integers"}), 400
    try:
        payload = session_controller.resolve(event_id, choice_index)
    except InvalidReference as exc:
        return jsonify({"error": str(exc)}), 404
    except InvalidChoiceIndex as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(payload)


@app.route('/events/reset', methods=['POST'])
def events_reset():
    data = _json_body()
    try:
        seed = int(data.get("seed", DEFAULT_SEED))
    except (TypeError, ValueError):
        return jsonify({"error": f"Invalid seed '{data.get('seed')}'"}), 400
    _initialize_session(seed)
    return jsonify({"status": "reset", "seed": seed})


if __name__ == '__main__':
    app.run(debug=True)
