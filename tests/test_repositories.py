"""
Tests for repository layer (data access layer)
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from meowwalker.db_models import KeyValueRecord
from meowwalker.errors import PersistenceFailure
from meowwalker.repositories import APPOINTMENTS_KEY, SETTINGS_KEY, KeyValueRepository, KeyValueStore


class TestKeyValueRepository:
    """Tests for KeyValueRepository"""

    def test_get_missing_value(self, db_session):
        repo = KeyValueRepository(db_session)
        assert repo.get_value(SETTINGS_KEY) is None

    def test_set_and_get_value(self, db_session):
        repo = KeyValueRepository(db_session)
        repo.set_value(SETTINGS_KEY, {"baseAddress": "上海市静安寺"})

        assert repo.get_value(SETTINGS_KEY) == {"baseAddress": "上海市静安寺"}

    def test_values_stored_as_readable_json(self, db_session):
        repo = KeyValueRepository(db_session)
        record = repo.set_value(SETTINGS_KEY, {"baseAddress": "静安寺"})
        assert "静安寺" in record.value

    def test_timestamps_are_timezone_aware(self, db_session):
        repo = KeyValueRepository(db_session)
        record = KeyValueRecord(key=SETTINGS_KEY, value="{}")
        assert record.updated_at.tzinfo is not None

        repo.set_value(SETTINGS_KEY, {})
        repo.set_value(SETTINGS_KEY, {"baseAddress": "Home"})

        assert repo.get_value(SETTINGS_KEY) == {"baseAddress": "Home"}

    def test_set_value_replaces(self, db_session):
        repo = KeyValueRepository(db_session)
        first = repo.set_value(APPOINTMENTS_KEY, [])
        first_updated = first.updated_at
        repo.set_value(APPOINTMENTS_KEY, [{"id": "a"}])

        assert repo.get_value(APPOINTMENTS_KEY) == [{"id": "a"}]
        assert repo.get_record(APPOINTMENTS_KEY).updated_at >= first_updated


class TestKeyValueStore:
    """Tests for the session-per-operation store"""

    def test_round_trip_across_sessions(self, kv_store):
        kv_store.save(APPOINTMENTS_KEY, [{"id": "x", "status": "pending"}])
        assert kv_store.load(APPOINTMENTS_KEY) == [{"id": "x", "status": "pending"}]

    def test_load_missing_key(self, kv_store):
        assert kv_store.load("unknown") is None

    def test_unserializable_value_raises_persistence_failure(self, kv_store):
        with pytest.raises(PersistenceFailure):
            kv_store.save(SETTINGS_KEY, {"bad": object()})

    def test_database_error_raises_persistence_failure(self):
        session = MagicMock()
        session.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
        factory = MagicMock()
        factory.return_value.__enter__.return_value = session
        factory.return_value.__exit__.return_value = False

        store = KeyValueStore(factory)

        with pytest.raises(PersistenceFailure):
            store.load(SETTINGS_KEY)
        with pytest.raises(PersistenceFailure):
            store.save(SETTINGS_KEY, {})
