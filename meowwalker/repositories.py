"""
Repository pattern for database access
Provides clean separation between business logic and data access
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from meowwalker.database import SessionFactory
from meowwalker.db_models import KeyValueRecord, utc_now
from meowwalker.errors import PersistenceFailure

logger = logging.getLogger(__name__)

# Fixed record keys, shared with the browser version's local storage export
SETTINGS_KEY = "meow_settings"
APPOINTMENTS_KEY = "meow_appointments"
OWNER_CHAT_KEY = "meow_owner_chat"


class KeyValueRepository:
    """Repository for KeyValueRecord operations"""

    def __init__(self, session: Session):
        self.session = session

    def get_record(self, key: str) -> Optional[KeyValueRecord]:
        """Get record by key"""
        return self.session.get(KeyValueRecord, key)

    def get_value(self, key: str) -> Optional[Any]:
        """Get the decoded JSON value stored under a key"""
        record = self.get_record(key)
        if record is None:
            return None
        return json.loads(record.value)

    def set_value(self, key: str, value: Any) -> KeyValueRecord:
        """Serialize and store a value, replacing any previous one"""
        payload = json.dumps(value, ensure_ascii=False)
        record = self.get_record(key)
        if record is None:
            record = KeyValueRecord(key=key, value=payload)
            self.session.add(record)
        else:
            record.value = payload
            record.updated_at = utc_now()
        self.session.commit()
        self.session.refresh(record)
        return record


class KeyValueStore:
    """
    Durable key-value store used by the application state.

    Opens one session per operation and reports storage problems as
    PersistenceFailure so callers can decide whether they are fatal.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def load(self, key: str) -> Optional[Any]:
        try:
            with self.session_factory() as session:
                return KeyValueRepository(session).get_value(key)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Failed to read record {key}: {e}")
            raise PersistenceFailure(f"Could not read saved data ({key})") from e

    def save(self, key: str, value: Any) -> None:
        try:
            with self.session_factory() as session:
                KeyValueRepository(session).set_value(key, value)
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error(f"Failed to write record {key}: {e}")
            raise PersistenceFailure() from e
        logger.debug(f"Saved record {key}")
