"""
Appointment store - the in-memory schedule, written back in full after
every mutation.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from meowwalker.errors import PersistenceFailure
from meowwalker.models import Appointment, AppointmentStatus
from meowwalker.repositories import APPOINTMENTS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


def migrate_records(records: List[Dict[str, Any]]) -> int:
    """
    Give records saved before the status field existed a pending status.

    Returns:
        Number of records migrated
    """
    migrated = 0
    for record in records:
        if not record.get("status"):
            record["status"] = AppointmentStatus.PENDING.value
            migrated += 1
    return migrated


class AppointmentStore:
    """Owns the list of appointments for the running process"""

    def __init__(self, kv_store: KeyValueStore, key: str = APPOINTMENTS_KEY):
        self.kv_store = kv_store
        self.key = key
        self._appointments: List[Appointment] = []
        self.last_error: Optional[PersistenceFailure] = None

    def load(self) -> int:
        """
        Read the persisted appointments, migrating old records.

        Returns:
            Number of appointments loaded
        """
        records = self.kv_store.load(self.key) or []
        migrated = migrate_records(records)
        if migrated:
            logger.info(f"Migrated {migrated} appointment(s) without status to pending")

        appointments = []
        for record in records:
            try:
                appointments.append(Appointment.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable appointment record {record!r}: {e}")
        self._appointments = appointments
        logger.info(f"Loaded {len(appointments)} appointment(s)")
        return len(appointments)

    def _persist(self) -> None:
        """Write the whole collection; memory stays authoritative on failure"""
        try:
            self.kv_store.save(self.key, [apt.to_dict() for apt in self._appointments])
            self.last_error = None
        except PersistenceFailure as e:
            self.last_error = e
            logger.error(f"Appointments kept in memory only: {e}")

    def add(self, appointments: Iterable[Appointment]) -> None:
        """Append appointments and persist"""
        new_appointments = list(appointments)
        self._appointments.extend(new_appointments)
        self._persist()
        logger.info(f"Added {len(new_appointments)} appointment(s)")

    def remove(self, appointment_id: str) -> bool:
        """Remove an appointment; unknown ids are ignored"""
        before = len(self._appointments)
        self._appointments = [a for a in self._appointments if a.id != appointment_id]
        removed = len(self._appointments) != before
        self._persist()
        if removed:
            logger.info(f"Removed appointment {appointment_id}")
        return removed

    def complete(self, appointment_id: str) -> bool:
        """
        Mark an appointment as completed.

        Returns:
            True if the status changed
        """
        changed = False
        for appointment in self._appointments:
            if appointment.id == appointment_id and not appointment.is_completed:
                appointment.status = AppointmentStatus.COMPLETED
                changed = True
        self._persist()
        if changed:
            logger.info(f"Completed appointment {appointment_id}")
        return changed

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return next((a for a in self._appointments if a.id == appointment_id), None)

    def list(self) -> List[Appointment]:
        """Snapshot of the current appointments in stored order"""
        return list(self._appointments)

    def __len__(self) -> int:
        return len(self._appointments)
