"""Short-lived keyed records that expire after a TTL"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from blockgen.core.errors import StoreWriteError
from blockgen.crud.tables import Transient


Clock = Callable[[], datetime]


class TransientStore(ABC):
    """Expiring key-value records. Expired entries behave exactly like missing ones."""

    @abstractmethod
    def get(self, key: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store value for ttl seconds, overwriting any previous record."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError


class SQLTransientStore(TransientStore):
    def __init__(self, session: Session, clock: Clock = datetime.now):
        self.session = session
        self.clock = clock

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreWriteError(f"Failed to {action}: {e}") from e

    def get(self, key: str) -> Any:
        row = self.session.get(Transient, key)
        if row is None:
            return None
        if row.expires_at is not None and row.expires_at <= self.clock():
            self.session.delete(row)
            self._commit(f"purge expired transient {key}")
            return None
        return row.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        row = self.session.get(Transient, key) or Transient(key=key)
        row.value = value
        row.expires_at = self.clock() + timedelta(seconds=ttl) if ttl > 0 else None
        self.session.add(row)
        self._commit(f"write transient {key}")

    def delete(self, key: str) -> None:
        row = self.session.get(Transient, key)
        if row is not None:
            self.session.delete(row)
            self._commit(f"delete transient {key}")


@dataclass
class MemoryTransientStore(TransientStore):
    clock: Clock = datetime.now
    _items: dict[str, tuple[Any, datetime | None]] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self.clock():
            del self._items[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        expires_at = self.clock() + timedelta(seconds=ttl) if ttl > 0 else None
        self._items[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)
