"""
Tests for command helpers and rendered screens
"""

from datetime import date, datetime, time, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import FakeProvider, make_appointment
from meowwalker.app_state import STATE_KEY, AppState
from meowwalker.commands.clients import render_clients
from meowwalker.commands.schedule import render_history, render_schedule
from meowwalker.commands.settings import (
    parse_number,
    parse_tiers,
    setsurcharge_command,
    settiers_command,
)
from meowwalker.commands.status import describe_elapsed
from meowwalker.models import AppointmentStatus, PricingTier
from meowwalker.handlers.buttons import button_callback
from meowwalker.services.client_history import client_key, unique_clients


@pytest.fixture(name="state")
def state_fixture(bot_config, kv_store):
    return AppState(bot_config, kv_store, FakeProvider())


def make_context(state, args=None):
    context = Mock()
    context.application.bot_data = {STATE_KEY: state}
    context.args = args or []
    context.user_data = {}
    return context


def make_message_update():
    update = Mock()
    update.message.reply_text = AsyncMock()
    return update


def callback_data(markup):
    return [button.callback_data for row in markup.inline_keyboard for button in row]


class TestParsing:
    def test_parse_number(self):
        assert parse_number("10") == 10
        assert isinstance(parse_number("10.0"), int)
        assert parse_number("2.5") == 2.5

    @pytest.mark.parametrize("value", ["-1", "abc", "nan", "inf"])
    def test_parse_number_rejects(self, value):
        with pytest.raises(ValueError):
            parse_number(value)

    def test_parse_tiers_sorted(self):
        assert parse_tiers(["5:40", "1=20", "2.5:27.5"]) == [
            PricingTier(1, 20),
            PricingTier(2.5, 27.5),
            PricingTier(5, 40),
        ]

    @pytest.mark.parametrize("tokens", [[], ["5"], ["a:b"]])
    def test_parse_tiers_rejects(self, tokens):
        with pytest.raises(ValueError):
            parse_tiers(tokens)


class TestSettingsCommands:
    @pytest.mark.asyncio
    async def test_settiers_saves(self, state, kv_store):
        update = make_message_update()

        await settiers_command(update, make_context(state, ["3:30", "1:15"]))

        assert state.settings.pricing_tiers == [PricingTier(1, 15), PricingTier(3, 30)]
        assert kv_store.load("meow_settings")["pricingTiers"][0] == {"maxDistance": 1, "price": 15}
        assert "Settings saved" in update.message.reply_text.call_args.args[0]

    @pytest.mark.asyncio
    async def test_settiers_invalid_keeps_settings(self, state):
        update = make_message_update()
        before = list(state.settings.pricing_tiers)

        await settiers_command(update, make_context(state, ["oops"]))

        assert state.settings.pricing_tiers == before
        assert "❌" in update.message.reply_text.call_args.args[0]

    @pytest.mark.asyncio
    async def test_setsurcharge(self, state):
        update = make_message_update()

        await setsurcharge_command(update, make_context(state, ["cat", "7.5"]))

        assert state.settings.extra_cat_surcharge == 7.5

    @pytest.mark.asyncio
    async def test_setsurcharge_unknown_field(self, state):
        update = make_message_update()

        await setsurcharge_command(update, make_context(state, ["dog", "3"]))

        assert state.settings.holiday_surcharge == 10
        assert "Usage" in update.message.reply_text.call_args.args[0]


class TestScreens:
    def test_empty_schedule(self, state):
        text, markup = render_schedule(state)

        assert "No upcoming feeding visits" in text
        assert callback_data(markup) == ["new_quote", "main_menu"]

    def test_schedule_lists_pending_with_actions(self, state):
        today = state.today()
        state.store.add(
            [
                make_appointment(id="b", client_name="<Bob>", day=today, at=time(18, 0)),
                make_appointment(id="a", day=today, at=time(9, 0)),
                make_appointment(id="c", day=today, status=AppointmentStatus.COMPLETED),
            ]
        )

        text, markup = render_schedule(state)

        assert "(2 upcoming)" in text
        assert "&lt;Bob&gt;" in text
        assert text.index("09:00") < text.index("18:00")
        assert callback_data(markup) == [
            "apt_done:a", "apt_ics:a", "apt_del:a",
            "apt_done:b", "apt_ics:b", "apt_del:b",
            "main_menu",
        ]

    def test_history_shows_income(self, state):
        done = AppointmentStatus.COMPLETED
        state.store.add(
            [
                make_appointment(id="a", status=done, total_price=25, day=date(2025, 1, 5)),
                make_appointment(id="b", status=done, total_price=30.5, day=date(2025, 1, 6)),
                make_appointment(id="c", total_price=99),
            ]
        )

        text, _ = render_history(state)

        assert "Total income: <b>¥55.50</b>" in text
        assert text.index("2025-01-06") < text.index("2025-01-05")

    def test_clients_buttons(self, state):
        state.store.add(
            [
                make_appointment(id="a", client_name="Alice", address="A"),
                make_appointment(id="b", client_name="Alice", address="A"),
                make_appointment(id="c", client_name="Bob", address="B"),
            ]
        )

        text, markup = render_clients(state)

        assert "Alice" in text and "Bob" in text
        (alice, bob) = unique_clients(state.store.list())
        assert callback_data(markup) == [
            f"client_{client_key(alice)}",
            f"client_{client_key(bob)}",
            "main_menu",
        ]


class TestDescribeElapsed:
    def test_never(self):
        assert describe_elapsed(None, datetime(2025, 1, 1)) == "Never"

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "30 seconds ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=3), "3 hours ago"),
        ],
    )
    def test_elapsed(self, delta, expected):
        now = datetime(2025, 1, 1, 12, 0)
        assert describe_elapsed(now - delta, now) == expected


class TestButtons:
    @staticmethod
    def make_callback_update(data):
        update = Mock()
        update.callback_query.data = data
        update.callback_query.answer = AsyncMock()
        update.callback_query.edit_message_text = AsyncMock()
        update.callback_query.message.reply_document = AsyncMock()
        return update

    @pytest.mark.asyncio
    async def test_complete_button(self, state):
        state.store.add([make_appointment(id="a", day=state.today())])
        update = self.make_callback_update("apt_done:a")

        await button_callback(update, make_context(state))

        assert state.store.get("a").is_completed
        text = update.callback_query.edit_message_text.call_args.args[0]
        assert "Marked Alice" in text

    @pytest.mark.asyncio
    async def test_delete_button(self, state):
        state.store.add([make_appointment(id="a")])
        update = self.make_callback_update("apt_del:a")

        await button_callback(update, make_context(state))

        assert len(state.store) == 0

    @pytest.mark.asyncio
    async def test_export_button_sends_ics(self, state):
        state.store.add([make_appointment(id="a", day=date(2025, 2, 1))])
        update = self.make_callback_update("apt_ics:a")

        await button_callback(update, make_context(state))

        document = update.callback_query.message.reply_document.call_args.kwargs["document"]
        assert document.filename == "meow_walker_2025-02-01.ics"

    @pytest.mark.asyncio
    async def test_export_missing_appointment(self, state):
        update = self.make_callback_update("apt_ics:gone")

        await button_callback(update, make_context(state))

        update.callback_query.message.reply_document.assert_not_awaited()
        assert "no longer exists" in update.callback_query.edit_message_text.call_args.args[0]
