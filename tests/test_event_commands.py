# kingdomherald - Discord Event Announcements and Reminders
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""Tests for operator commands and picker menu routing."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytz
from discord.ext import commands

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from commands.event_commands import (
    AccessDenied,
    EventCommands,
    can_use_commands,
)
from reminders import ReminderQueue, SelectionProtocol
from reminders.tokens import STEP_DATE, SelectionToken
from state import GuildSettings, StateStore
from tools.calendar_feed import CalendarEvent, CalendarFeedError

ACCESS_ROLE = 900


def member(*role_ids: int, admin: bool = False, user_id: int = 3):
    return SimpleNamespace(
        id=user_id,
        roles=[SimpleNamespace(id=r) for r in role_ids],
        guild_permissions=SimpleNamespace(administrator=admin),
    )


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def cog(store):
    queue = ReminderQueue(MagicMock(), store)
    calendar = MagicMock()
    calendar.fetch_events = AsyncMock(return_value=[])
    return EventCommands(MagicMock(), store, queue, SelectionProtocol(queue), calendar)


def make_ctx(author=None, guild=True):
    ctx = MagicMock()
    ctx.author = author or member(admin=True)
    ctx.guild = MagicMock(id=1) if guild else None
    ctx.channel = MagicMock(id=2)
    ctx.prefix = "!"
    ctx.reply = AsyncMock()
    return ctx


def make_interaction(custom_id, values, user=None):
    interaction = MagicMock()
    interaction.type = discord.InteractionType.component
    interaction.data = {"custom_id": custom_id, "values": values}
    interaction.user = user or member(admin=True)
    interaction.guild_id = 1
    interaction.channel_id = 2
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    return interaction


def window_tokens():
    now = datetime.now(pytz.UTC).replace(minute=0, second=0, microsecond=0)
    start, end = now + timedelta(days=1), now + timedelta(days=3)
    date_token = SelectionToken(step=STEP_DATE, start=start, end=end)
    day = (start + timedelta(days=1)).strftime("%Y-%m-%d")
    return date_token.encode(), date_token.with_date(day).encode(), day


class TestAccessCheck:
    """Test can_use_commands."""

    def test_admins_only_until_role_set(self):
        settings = GuildSettings()
        assert can_use_commands(member(admin=True), settings)
        assert not can_use_commands(member(ACCESS_ROLE), settings)

    def test_role_holders_once_set(self):
        settings = GuildSettings(access_role_id=ACCESS_ROLE)
        assert can_use_commands(member(ACCESS_ROLE), settings)
        assert not can_use_commands(member(123), settings)
        assert not can_use_commands(member(admin=True), settings)


class TestCommands:
    """Test command callbacks."""

    @pytest.mark.asyncio
    async def test_cog_check_rejects_outsiders(self, cog, store):
        store.update_settings(access_role_id=ACCESS_ROLE)

        with pytest.raises(AccessDenied):
            await cog.cog_check(make_ctx(author=member(1)))
        assert await cog.cog_check(make_ctx(author=member(ACCESS_ROLE)))

    @pytest.mark.asyncio
    async def test_cog_check_rejects_dm(self, cog):
        with pytest.raises(commands.NoPrivateMessage):
            await cog.cog_check(make_ctx(guild=False))

    @pytest.mark.asyncio
    async def test_set_ping_channel(self, cog, store):
        ctx = make_ctx()
        channel = MagicMock(id=77, mention="<#77>")

        await cog.set_ping_channel.callback(cog, ctx, channel)

        assert store.settings.announcement_channel_id == 77
        ctx.reply.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_clear_team_role(self, cog, store):
        store.update_settings(team_role_id=5)

        await cog.clear_aoo_team_role.callback(cog, make_ctx())

        assert store.settings.team_role_id is None

    @pytest.mark.asyncio
    async def test_scheduled_list_empty(self, cog):
        ctx = make_ctx()

        await cog.scheduled_list.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with("No scheduled reminders right now.")

    @pytest.mark.asyncio
    async def test_show_config_is_fenced(self, cog):
        ctx = make_ctx()

        await cog.show_config.callback(cog, ctx)

        text = ctx.reply.await_args.args[0]
        assert text.startswith("```")
        assert "Scheduled reminders: 0" in text

    @pytest.mark.asyncio
    async def test_aoo_calendar_failure(self, cog):
        cog.calendar.fetch_events = AsyncMock(side_effect=CalendarFeedError("boom"))
        ctx = make_ctx()

        await cog.aoo.callback(cog, ctx)

        assert "Could not read the event calendar" in ctx.reply.await_args.args[0]

    @pytest.mark.asyncio
    async def test_aoo_without_event(self, cog):
        ctx = make_ctx()

        await cog.aoo.callback(cog, ctx)

        assert "No upcoming/ongoing AOO run event" in ctx.reply.await_args.args[0]

    @pytest.mark.asyncio
    async def test_aoo_offers_date_menu(self, cog):
        now = datetime.now(pytz.UTC)
        cog.calendar.fetch_events = AsyncMock(
            return_value=[
                CalendarEvent(
                    id="aoo-1",
                    start=now + timedelta(days=1),
                    end=now + timedelta(days=2),
                    description="Type: ark_battle",
                )
            ]
        )
        ctx = make_ctx()

        await cog.aoo.callback(cog, ctx)

        view = ctx.reply.await_args.kwargs["view"]
        assert view.select.custom_id.startswith("evsel:")
        assert len(view.select.options) >= 1


class TestInteractionRouting:
    """Test on_interaction."""

    @pytest.mark.asyncio
    async def test_ignores_foreign_components(self, cog):
        interaction = make_interaction("some_other_button", [])

        await cog.on_interaction(interaction)

        interaction.response.send_message.assert_not_awaited()
        interaction.response.edit_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_date_step_shows_hours(self, cog):
        date_token, _, day = window_tokens()
        interaction = make_interaction(date_token, [day])

        await cog.on_interaction(interaction)

        kwargs = interaction.response.edit_message.await_args.kwargs
        assert day in kwargs["content"]
        assert kwargs["view"].select.custom_id.startswith("evsel:")
        assert len(kwargs["view"].select.options) == 24

    @pytest.mark.asyncio
    async def test_hour_step_schedules(self, cog):
        _, hour_token, _ = window_tokens()
        interaction = make_interaction(hour_token, ["12"])

        await cog.on_interaction(interaction)

        kwargs = interaction.response.edit_message.await_args.kwargs
        assert kwargs["view"] is None
        assert "AOO start selected" in kwargs["content"]
        assert len(cog.queue.pending()) == 2
        assert cog.queue.pending()[0].group_key == "aoo:1:2:3"

    @pytest.mark.asyncio
    async def test_bad_token_answers_ephemerally(self, cog):
        interaction = make_interaction("evsel:{broken", ["12"])

        await cog.on_interaction(interaction)

        args, kwargs = interaction.response.send_message.await_args
        assert "out of date or invalid" in args[0]
        assert kwargs["ephemeral"] is True
        assert cog.queue.pending() == []

    @pytest.mark.asyncio
    async def test_denied_user(self, cog, store):
        store.update_settings(access_role_id=ACCESS_ROLE)
        _, hour_token, _ = window_tokens()
        interaction = make_interaction(hour_token, ["12"], user=member(1))

        await cog.on_interaction(interaction)

        args, kwargs = interaction.response.send_message.await_args
        assert "permission" in args[0]
        assert cog.queue.pending() == []
