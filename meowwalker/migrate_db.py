#!/usr/bin/env python3
"""
Import script for data exported from the browser version of the app.
Reads a JSON dump of its local storage (meow_settings, meow_appointments)
and merges it into the bot database.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from meowwalker.database import open_engine, session_factory
from meowwalker.models import AppSettings, Appointment
from meowwalker.repositories import APPOINTMENTS_KEY, SETTINGS_KEY, KeyValueStore
from meowwalker.services.appointment_store import migrate_records

logger = logging.getLogger(__name__)


def decode_entry(value: Any) -> Any:
    """Local storage keeps JSON as strings; accept both forms"""
    if isinstance(value, str):
        return json.loads(value)
    return value


def import_settings(data: Dict[str, Any], store: KeyValueStore) -> bool:
    raw = data.get(SETTINGS_KEY)
    if raw is None:
        return False
    settings = AppSettings.from_dict(decode_entry(raw))
    store.save(SETTINGS_KEY, settings.to_dict())
    logger.info(f"Imported settings (base address: {settings.base_address})")
    return True


def import_appointments(data: Dict[str, Any], store: KeyValueStore) -> int:
    """
    Append exported appointments that are not stored yet.

    Returns:
        Number of appointments added
    """
    records: List[Dict[str, Any]] = decode_entry(data.get(APPOINTMENTS_KEY) or [])
    migrate_records(records)

    existing = store.load(APPOINTMENTS_KEY) or []
    known_ids = {record.get("id") for record in existing}

    added = 0
    for record in records:
        try:
            appointment = Appointment.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable record {record!r}: {e}")
            continue
        if appointment.id in known_ids:
            continue
        existing.append(appointment.to_dict())
        known_ids.add(appointment.id)
        added += 1

    store.save(APPOINTMENTS_KEY, existing)
    logger.info(f"Imported {added} appointment(s), {len(existing)} stored in total")
    return added


def import_export_file(
    export_path: str, db_path: str = "meowwalker.db", store: Optional[KeyValueStore] = None
) -> bool:
    """Merge an export file into the database"""
    engine = None
    if store is None:
        engine = open_engine(db_path)
        store = KeyValueStore(session_factory(engine))

    try:
        data = json.loads(Path(export_path).read_text(encoding="utf-8"))
        import_settings(data, store)
        import_appointments(data, store)
        return True
    except Exception as e:
        logger.error(f"❌ Import failed: {e}")
        return False
    finally:
        if engine is not None:
            engine.dispose()


if __name__ == "__main__":
    # Setup basic logging for script execution
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if len(sys.argv) < 2:
        logger.error("Usage: python -m meowwalker.migrate_db EXPORT.json [DB_FILE]")
        sys.exit(2)

    export_file = sys.argv[1]
    db_file = sys.argv[2] if len(sys.argv) > 2 else "meowwalker.db"

    if not Path(export_file).exists():
        logger.error(f"❌ Export file not found: {export_file}")
        sys.exit(1)

    success = import_export_file(export_file, db_file)
    sys.exit(0 if success else 1)
