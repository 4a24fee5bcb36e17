import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Protocol

from ..core.errors import PersistenceFailure
from ..core.ids import PlayerId
from ..events.ledger import EventLedger
from .save_load import to_dict, from_dict

logger = logging.getLogger(__name__)


class PersistenceStore(Protocol):
    def load(self, player_id: PlayerId) -> Optional[EventLedger]:
        ...

    def save(self, player_id: PlayerId, ledger: EventLedger) -> None:
        ...


class InMemoryStore:
    """Keeps serialized blobs, so saved ledgers never alias live ones."""

    def __init__(self):
        self._blobs: Dict[PlayerId, Dict[str, Any]] = {}

    def load(self, player_id: PlayerId) -> Optional[EventLedger]:
        blob = self._blobs.get(player_id)
        if blob is None:
            return None
        return from_dict(json.loads(json.dumps(blob)))

    def save(self, player_id: PlayerId, ledger: EventLedger) -> None:
        self._blobs[player_id] = json.loads(json.dumps(to_dict(ledger)))


class JsonFileStore:
    """One JSON file per player under a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, player_id: PlayerId) -> Path:
        return self.directory / f"{player_id}.json"

    def load(self, player_id: PlayerId) -> Optional[EventLedger]:
        path = self._path(player_id)
        if not path.exists():
            return None
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            return from_dict(data)
        except PersistenceFailure:
            raise
        except (OSError, ValueError, KeyError) as exc:
            raise PersistenceFailure(f"Could not load ledger for '{player_id}' from {path}: {exc}") from exc

    def save(self, player_id: PlayerId, ledger: EventLedger) -> None:
        path = self._path(player_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(to_dict(ledger), f, indent=2)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Could not save ledger for '{player_id}' to {path}: {exc}") from exc


def try_save(store: PersistenceStore, player_id: PlayerId, ledger: EventLedger) -> bool:
    """
    Best-effort save for callers. A failure is logged and reported as False;
    the in-memory ledger is left as it was and the next save may succeed.
    """
    try:
        store.save(player_id, ledger)
    except PersistenceFailure:
        logger.warning("Ledger save failed for player '%s'", player_id, exc_info=True)
        return False
    return True


def load_or_new(store: PersistenceStore, player_id: PlayerId, history_limit: Optional[int] = None) -> EventLedger:
    """Loads a player's ledger, starting fresh when none exists or the load fails."""
    try:
        ledger = store.load(player_id)
    except PersistenceFailure:
        logger.warning("Ledger load failed for player '%s'; starting fresh", player_id, exc_info=True)
        ledger = None
    if ledger is None:
        ledger = EventLedger() if history_limit is None else EventLedger(history_limit=history_limit)
    return ledger
