import logging
import threading

from pydantic import TypeAdapter, ValidationError as SchemaError

from walktrack.core.constants import HISTORY_KEY
from walktrack.errors import PersistenceError
from walktrack.schemas.walk import WalkSession

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(list[WalkSession])


def dump_history(sessions) -> str:
    """Serialize sessions as the stored JSON array.

    [{"distance": float, "calories": float, "seconds": int,
      "path": [{"lat": float, "lng": float}, ...]}, ...]
    """
    return _history_adapter.dump_json(list(sessions), by_alias=True).decode("utf-8")


def parse_history(data: str) -> list[WalkSession]:
    return _history_adapter.validate_json(data)


class SessionStore:
    """Append-only history of completed walks, oldest first.

    The whole collection is re-serialized under one key on every append.
    Appends are serialized by an internal lock.
    """

    def __init__(self, kv, key: str = HISTORY_KEY):
        self._kv = kv
        self._key = key
        self._sessions: list[WalkSession] = []
        self._lock = threading.Lock()

    def load(self) -> list[WalkSession]:
        """Read the persisted history; absent or unreadable data means empty."""
        try:
            data = self._kv.get_string(self._key)
        except PersistenceError as e:
            logger.warning("History unreadable, starting empty: %s", e)
            data = None

        sessions: list[WalkSession] = []
        if data:
            try:
                sessions = parse_history(data)
            except SchemaError as e:
                logger.warning("Stored history is malformed, starting empty: %s", e)

        with self._lock:
            self._sessions = sessions
        logger.info("Loaded %d walk(s) from history", len(sessions))
        return list(sessions)

    def append(self, session: WalkSession) -> None:
        """Add `session` and persist the full history before returning.

        On a failed write the session stays in memory and PersistenceError
        is raised.
        """
        with self._lock:
            self._sessions.append(session)
            payload = dump_history(self._sessions)
            self._kv.set_string(self._key, payload)
        logger.info("Saved history with %d walk(s)", len(self._sessions))

    def all(self) -> tuple[WalkSession, ...]:
        with self._lock:
            return tuple(self._sessions)

    def get(self, index: int) -> WalkSession:
        """Session at `index` (0 = oldest). Raises IndexError when out of range."""
        with self._lock:
            if index < 0 or index >= len(self._sessions):
                raise IndexError(f"No walk at index {index}")
            return self._sessions[index]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
