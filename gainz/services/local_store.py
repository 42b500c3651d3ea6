"""Device key-value store backed by the local SQLite database."""

import json
import logging
from typing import Any

from sqlalchemy import Engine
from sqlmodel import Session, select

from gainz.models import StorageItem

logger = logging.getLogger(__name__)


class LocalStore:
    """JSON values under string keys, one row per key."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, key: str, default: Any = None) -> Any:
        with Session(self.engine) as session:
            item = session.get(StorageItem, key)
            if item is None:
                return default
            return json.loads(item.value)

    def set(self, key: str, value: Any) -> None:
        with Session(self.engine) as session:
            item = session.get(StorageItem, key)
            encoded = json.dumps(value)
            if item is None:
                item = StorageItem(key=key, value=encoded)
            else:
                item.value = encoded
            session.add(item)
            session.commit()

    def remove(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: list[str]) -> None:
        with Session(self.engine) as session:
            items = session.exec(select(StorageItem).where(StorageItem.key.in_(keys))).all()
            for item in items:
                session.delete(item)
            session.commit()

    def keys(self) -> list[str]:
        with Session(self.engine) as session:
            return list(session.exec(select(StorageItem.key)).all())

    def clear(self) -> None:
        with Session(self.engine) as session:
            for item in session.exec(select(StorageItem)).all():
                session.delete(item)
            session.commit()
        logger.info("Cleared local key-value store")
