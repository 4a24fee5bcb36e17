import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from src.lifeevents.core.clock import FixedClock
from src.lifeevents.core.config import DEFAULT_CONFIG_PATH, load_engine_config
from src.lifeevents.core.player import PlayerSnapshot
from src.lifeevents.core.rng import get_seeded_rng
from src.lifeevents.core.sim import EventEngine
from src.lifeevents.events.registry import TemplateCatalog, DEFAULT_CATALOG_PATH
from src.lifeevents.reports.feed import format_realized, generate_feed


def main():
    parser = argparse.ArgumentParser(description="Play a seeded life-event session.")
    parser.add_argument(
        "--catalog",
        type=str,
        default=str(DEFAULT_CATALOG_PATH),
        help="Path to the event template YAML file.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to the engine settings YAML file.",
    )
    parser.add_argument("--seed", type=int, default=42, help="RNG seed.")
    parser.add_argument("--ticks", type=int, default=24, help="Number of ticks to simulate.")
    parser.add_argument(
        "--minutes-per-tick", type=int, default=5, help="Simulated minutes between ticks."
    )
    parser.add_argument(
        "--choice", type=int, default=0, help="Choice index taken on every new event (-1 lets events expire)."
    )
    parser.add_argument("--level", type=int, default=1)
    parser.add_argument("--heat", type=int, default=10)
    parser.add_argument("--cash", type=int, default=1000)
    parser.add_argument(
        "--dump-json", action="store_true", help="Dump the final ledger to a JSON file."
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    catalog = TemplateCatalog()
    catalog.load_from_yaml(Path(args.catalog))
    config = load_engine_config(Path(args.config))

    clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    engine = EventEngine(catalog=catalog, config=config, clock=clock)
    ledger = engine.new_ledger()
    snapshot = PlayerSnapshot(level=args.level, heat=args.heat, cash=args.cash, energy=100, health=100)
    rng = get_seeded_rng(args.seed)
    print(f"Loaded catalog v{catalog.version} from '{args.catalog}' with seed {args.seed}.")

    for _ in range(args.ticks):
        now = clock.advance(minutes=args.minutes_per_tick)
        report = engine.tick(ledger, snapshot, now, rng)
        print(generate_feed(report.log, at=now), end="")

        spawned = report.spawned
        if spawned is not None and spawned.result is None and args.choice >= 0:
            choice_index = min(args.choice, len(spawned.choices) - 1)
            resolution = engine.resolve_choice(ledger, spawned.id, choice_index, snapshot, rng, now=now)
            outcome = resolution.outcome
            print(
                f"  -> '{outcome.choice_label}' on #{outcome.event_id}: "
                f"{outcome.result.value} ({format_realized(outcome.realized)})"
            )

    print(f"\nFinal snapshot: {snapshot.to_dict()}")
    print(f"Active: {len(ledger.active)}  History: {len(ledger.history)}")

    if args.dump_json:
        from src.lifeevents.io.save_load import save_to_json
        output_path = "final_ledger.json"
        save_to_json(ledger, output_path)
        print(f"Final ledger dumped to {output_path}")

if __name__ == "__main__":
    main()
