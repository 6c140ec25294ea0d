"""Key/value repository: the persistent namespace that holds every stored document."""

import json
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sqlalchemy.orm import Session

from captioner.models.entities import KeyValue


class KeyValueRepository:
    """
    Access to the kv_store table. Values are text; get_json/set_json wrap them as JSON.
    Used by ProjectRepository ("projects") and SettingsRepository.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self, write: bool = False) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            if write:
                session.commit()
        finally:
            session.close()

    def get_value(self, key: str) -> str | None:
        """Return the value for key, or None if missing."""
        with self._session_scope() as session:
            row = session.get(KeyValue, key)
            return row.value if row is not None else None

    def set_value(self, key: str, value: str) -> None:
        """Set key to value (upsert)."""
        with self._session_scope(write=True) as session:
            row = session.get(KeyValue, key)
            if row is not None:
                row.value = value
            else:
                session.add(KeyValue(key=key, value=value))

    def delete_value(self, key: str) -> bool:
        """Remove key. Return True if a row was deleted."""
        with self._session_scope(write=True) as session:
            row = session.get(KeyValue, key)
            if row is None:
                return False
            session.delete(row)
            return True

    def get_json(self, key: str, default: Any = None) -> Any:
        """Return the decoded JSON value for key, or default if missing."""
        raw = self.get_value(key)
        if raw is None or not raw.strip():
            return default
        return json.loads(raw)

    def set_json(self, key: str, data: Any) -> None:
        """Encode data as JSON and store it under key."""
        self.set_value(key, json.dumps(data, ensure_ascii=False))
