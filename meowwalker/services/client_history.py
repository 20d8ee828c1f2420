"""
Client history - previously served clients derived from the schedule.
"""

import hashlib
from typing import Dict, Iterable, List, Optional, Tuple

from meowwalker.models import Appointment, ClientRecord


def unique_clients(appointments: Iterable[Appointment]) -> List[ClientRecord]:
    """
    Deduplicate clients by exact (name, address).

    The first appointment seen for a client provides `last_date`, in stored
    order; the list is not re-sorted by date.
    """
    clients: Dict[Tuple[str, str], ClientRecord] = {}
    for apt in appointments:
        key = (apt.client_name, apt.address)
        if key not in clients:
            clients[key] = ClientRecord(
                name=apt.client_name, address=apt.address, last_date=apt.date
            )
    return list(clients.values())


def client_key(client: ClientRecord) -> str:
    """Short key for a client that stays the same while the schedule changes"""
    identity = f"{client.name}\n{client.address}".encode("utf-8")
    return hashlib.sha1(identity).hexdigest()[:12]


def find_client(appointments: Iterable[Appointment], key: str) -> Optional[ClientRecord]:
    for client in unique_clients(appointments):
        if client_key(client) == key:
            return client
    return None
