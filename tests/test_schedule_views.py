"""
Tests for schedule views and client history
"""

from datetime import date, time

from conftest import make_appointment
from meowwalker.models import AppointmentStatus
from meowwalker.services.client_history import client_key, find_client, unique_clients
from meowwalker.services.schedule_views import (
    active_appointments,
    day_label,
    group_by_date,
    history_appointments,
    total_income,
)

DONE = AppointmentStatus.COMPLETED


class TestScheduleViews:
    def test_active_sorted_by_date_and_time(self):
        appointments = [
            make_appointment(id="late", day=date(2025, 1, 7), at=time(9, 0)),
            make_appointment(id="done", day=date(2025, 1, 5), status=DONE),
            make_appointment(id="noon", day=date(2025, 1, 6), at=time(12, 0)),
            make_appointment(id="early", day=date(2025, 1, 6), at=time(8, 0)),
        ]

        assert [a.id for a in active_appointments(appointments)] == ["early", "noon", "late"]

    def test_history_only_completed(self):
        appointments = [
            make_appointment(id="b", day=date(2025, 1, 6), status=DONE),
            make_appointment(id="pending"),
            make_appointment(id="a", day=date(2025, 1, 5), status=DONE),
        ]

        assert [a.id for a in history_appointments(appointments)] == ["a", "b"]

    def test_total_income_counts_completed_only(self):
        appointments = [
            make_appointment(id="a", status=DONE, total_price=25),
            make_appointment(id="b", status=DONE, total_price=32.5),
            make_appointment(id="c", total_price=100),
        ]

        assert total_income(appointments) == 57.5

    def test_total_income_empty(self):
        assert total_income([]) == 0

    def test_group_by_date_newest_first(self):
        appointments = [
            make_appointment(id="a", day=date(2025, 1, 5)),
            make_appointment(id="b", day=date(2025, 1, 6)),
            make_appointment(id="c", day=date(2025, 1, 5)),
        ]

        groups = group_by_date(appointments)

        assert [day for day, _ in groups] == [date(2025, 1, 6), date(2025, 1, 5)]
        assert [a.id for a in groups[1][1]] == ["a", "c"]

    def test_day_labels(self):
        today = date(2025, 1, 6)  # Monday
        assert day_label(today, today) == "Today"
        assert day_label(date(2025, 1, 7), today) == "Tomorrow"
        assert day_label(date(2025, 1, 8), today) == "Wed"
        assert day_label(date(2025, 1, 4), today) == "Sat"


class TestUniqueClients:
    def test_deduplicates_by_name_and_address(self):
        appointments = [
            make_appointment(id="1", client_name="Alice", address="A", day=date(2025, 1, 3)),
            make_appointment(id="2", client_name="Bob", address="B", day=date(2025, 1, 4)),
            make_appointment(id="3", client_name="Alice", address="A", day=date(2025, 1, 9)),
            make_appointment(id="4", client_name="Alice", address="Other", day=date(2025, 1, 2)),
        ]

        clients = unique_clients(appointments)

        assert [(c.name, c.address) for c in clients] == [
            ("Alice", "A"),
            ("Bob", "B"),
            ("Alice", "Other"),
        ]

    def test_first_seen_record_provides_date(self):
        appointments = [
            make_appointment(id="1", day=date(2025, 1, 3)),
            make_appointment(id="2", day=date(2025, 1, 9)),
        ]

        (client,) = unique_clients(appointments)

        assert client.last_date == date(2025, 1, 3)

    def test_includes_completed_appointments(self):
        clients = unique_clients([make_appointment(status=DONE)])
        assert len(clients) == 1

    def test_empty(self):
        assert unique_clients([]) == []


class TestClientKey:
    def test_key_depends_on_name_and_address_only(self):
        early = make_appointment(id="1", client_name="Alice", address="A", day=date(2025, 1, 3))
        late = make_appointment(id="2", client_name="Alice", address="A", day=date(2025, 1, 9))
        moved = make_appointment(id="3", client_name="Alice", address="B")

        (first,) = unique_clients([early])
        (second,) = unique_clients([late])
        (third,) = unique_clients([moved])

        assert client_key(first) == client_key(second)
        assert client_key(first) != client_key(third)

    def test_find_client_survives_schedule_changes(self):
        appointments = [
            make_appointment(id="1", client_name="Alice", address="A"),
            make_appointment(id="2", client_name="Bob", address="B"),
        ]
        (_, bob) = unique_clients(appointments)
        key = client_key(bob)

        assert find_client(appointments[1:], key).name == "Bob"
        assert find_client(appointments[:1], key) is None
