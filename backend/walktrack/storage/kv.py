from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from walktrack.errors import PersistenceError
from walktrack.models.preference import Preference


class KeyValueStore(Protocol):
    """Opaque key-value persistence used for settings and history blobs."""

    def get_string(self, key: str) -> Optional[str]: ...

    def set_string(self, key: str, value: str) -> None: ...

    def get_double(self, key: str) -> Optional[float]: ...

    def set_double(self, key: str, value: float) -> None: ...


class SqlKeyValueStore:
    """KeyValueStore backed by the `preferences` table.

    Any database failure surfaces as PersistenceError; callers decide
    whether it is fatal.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _read(self, key: str):
        """Return (text_value, number_value) for `key`, or None if unset."""
        db = self._session_factory()
        try:
            row = db.get(Preference, key)
            if row is None:
                return None
            return row.text_value, row.number_value
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {key!r}: {e}") from e
        finally:
            db.close()

    def _write(self, key: str, **values) -> None:
        db = self._session_factory()
        try:
            row = db.get(Preference, key)
            if row is None:
                row = Preference(key=key, **values)
                db.add(row)
            else:
                for name, value in values.items():
                    setattr(row, name, value)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to write {key!r}: {e}") from e
        finally:
            db.close()

    def get_string(self, key: str) -> Optional[str]:
        values = self._read(key)
        return values[0] if values is not None else None

    def set_string(self, key: str, value: str) -> None:
        self._write(key, text_value=value, number_value=None)

    def get_double(self, key: str) -> Optional[float]:
        values = self._read(key)
        if values is None or values[1] is None:
            return None
        return float(values[1])

    def set_double(self, key: str, value: float) -> None:
        self._write(key, text_value=None, number_value=float(value))
