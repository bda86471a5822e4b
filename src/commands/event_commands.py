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

"""
Event Commands

Prefix commands operators use to configure announcements, list pending
reminders and open the AOO start picker, plus routing for the picker's
select menus.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import discord
import pytz
from discord.ext import commands

from analytics import track
from announcements.messages import chunk_lines, pending_summary, settings_summary
from reminders import (
    STEP_DATE,
    STEP_HOUR,
    ReminderQueue,
    SelectionError,
    SelectionProtocol,
    is_selection_token,
    peek_step,
)
from state import GuildSettings, StateStore
from tools.calendar_feed import CalendarFeedClient, CalendarFeedError

from .views import date_select_view, hour_select_view

if TYPE_CHECKING:
    from discord_bot import DiscordBot

logger = logging.getLogger("kingdomherald.commands.events")


def is_admin(member) -> bool:
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


def can_use_commands(member, settings: GuildSettings) -> bool:
    """
    Access check for commands and picker menus.

    With an access role configured only holders of that role pass; until one
    is set, only administrators do.
    """
    role_id = settings.access_role_id
    if not role_id:
        return is_admin(member)
    return any(role.id == role_id for role in getattr(member, "roles", []))


def access_denied_message(settings: GuildSettings, what: str = "this bot") -> str:
    if settings.access_role_id:
        return f"❌ You don’t have permission to use {what}."
    return f"❌ Access role not set yet. Only **Admins** can use {what} right now."


class AccessDenied(commands.CheckFailure):
    """Raised by the cog check; message is shown to the user."""

    pass


class EventCommands(commands.Cog):
    """
    Operator commands.

    Commands:
    - set_access_role / set_ping_channel / set_aoo_team_role / clear_aoo_team_role
    - set_mge_channel / set_mge_role
    - show_config - Current settings and pending reminder count
    - scheduled_list - Pending reminders, soonest first
    - ping
    - aoo - Pick the AOO start time and schedule countdown reminders
    """

    def __init__(
        self,
        bot: "DiscordBot",
        store: StateStore,
        queue: ReminderQueue,
        selection: SelectionProtocol,
        calendar: CalendarFeedClient,
    ):
        self.bot = bot
        self.store = store
        self.queue = queue
        self.selection = selection
        self.calendar = calendar

    async def cog_check(self, ctx: commands.Context) -> bool:
        if ctx.guild is None:
            raise commands.NoPrivateMessage()
        settings = self.store.settings
        if not can_use_commands(ctx.author, settings):
            raise AccessDenied(access_denied_message(settings))
        return True

    def _track_command(self, ctx: commands.Context) -> None:
        track(
            "command_used",
            "command",
            user_id=ctx.author.id,
            channel_id=ctx.channel.id,
            guild_id=ctx.guild.id if ctx.guild else None,
            properties={"command_name": ctx.command.name if ctx.command else None},
        )

    # =========================================================================
    # Settings
    # =========================================================================

    @commands.command(name="set_access_role", usage="@role")
    async def set_access_role(self, ctx: commands.Context, role: discord.Role):
        """Restrict the bot to holders of a role."""
        self._track_command(ctx)
        self.store.update_settings(access_role_id=role.id)
        await ctx.reply(f"✅ Access role set. Users with {role.mention} can use bot commands.")

    @commands.command(name="set_ping_channel", usage="#channel")
    async def set_ping_channel(self, ctx: commands.Context, channel: discord.TextChannel):
        """Set the channel milestone announcements are posted in."""
        self._track_command(ctx)
        self.store.update_settings(announcement_channel_id=channel.id)
        await ctx.reply(f"✅ Ping/announcement channel set to {channel.mention}")

    @commands.command(name="set_aoo_team_role", usage="@role")
    async def set_aoo_team_role(self, ctx: commands.Context, role: discord.Role):
        self._track_command(ctx)
        self.store.update_settings(team_role_id=role.id)
        await ctx.reply(f"✅ AOO Team role mention set to {role.mention}")

    @commands.command(name="clear_aoo_team_role")
    async def clear_aoo_team_role(self, ctx: commands.Context):
        self._track_command(ctx)
        self.store.update_settings(team_role_id=None)
        await ctx.reply("✅ AOO Team role mention cleared (no role will be mentioned).")

    @commands.command(name="set_mge_channel", usage="#channel")
    async def set_mge_channel(self, ctx: commands.Context, channel: discord.TextChannel):
        self._track_command(ctx)
        self.store.update_settings(secondary_channel_id=channel.id)
        await ctx.reply(f"✅ MGE channel set to {channel.mention}")

    @commands.command(name="set_mge_role", usage="@role")
    async def set_mge_role(self, ctx: commands.Context, role: discord.Role):
        self._track_command(ctx)
        self.store.update_settings(secondary_role_id=role.id)
        await ctx.reply(f"✅ MGE role set to {role.mention}")

    # =========================================================================
    # Listings
    # =========================================================================

    @commands.command(name="show_config")
    async def show_config(self, ctx: commands.Context):
        """Show current settings."""
        self._track_command(ctx)
        lines = settings_summary(self.store.settings, len(self.queue.pending()))
        for chunk in chunk_lines(lines):
            await ctx.reply(chunk)

    @commands.command(name="scheduled_list")
    async def scheduled_list(self, ctx: commands.Context):
        """List pending reminders, soonest first."""
        self._track_command(ctx)
        pending = self.queue.pending()
        if not pending:
            await ctx.reply("No scheduled reminders right now.")
            return

        lines = pending_summary(pending, datetime.now(pytz.UTC))
        for chunk in chunk_lines(lines):
            await ctx.reply(chunk)

    @commands.command(name="ping")
    async def ping(self, ctx: commands.Context):
        await ctx.reply("pong")

    # =========================================================================
    # AOO start picker
    # =========================================================================

    @commands.command(name="aoo")
    async def aoo(self, ctx: commands.Context):
        """Open the date/hour picker for the next AOO run."""
        self._track_command(ctx)
        try:
            events = await self.calendar.fetch_events()
            prompt = self.selection.initiate(events)
        except CalendarFeedError as e:
            logger.warning(f"Calendar fetch failed for !aoo: {e}")
            await ctx.reply("Could not read the event calendar right now. Try again later.")
            return
        except SelectionError as e:
            await ctx.reply(str(e))
            return

        await ctx.reply(content=prompt.content, view=date_select_view(prompt))

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction):
        """Route picker select menus by their token."""
        if interaction.type != discord.InteractionType.component:
            return
        data = interaction.data or {}
        custom_id = data.get("custom_id")
        if not is_selection_token(custom_id):
            return

        try:
            await self._handle_selection(interaction, custom_id, data.get("values") or [])
        except Exception as e:
            logger.error(f"Interaction error: {e}", exc_info=True)
            if not interaction.response.is_done():
                try:
                    await interaction.response.send_message(
                        "Error handling selection.", ephemeral=True
                    )
                except discord.HTTPException as reply_error:
                    logger.warning(f"Could not report selection error: {reply_error}")

    async def _handle_selection(
        self, interaction: discord.Interaction, custom_id: str, values: list[str]
    ) -> None:
        settings = self.store.settings
        if not can_use_commands(interaction.user, settings):
            await interaction.response.send_message(
                access_denied_message(settings, "this menu"), ephemeral=True
            )
            return

        value: Optional[str] = values[0] if values else None
        step = peek_step(custom_id)

        try:
            if step == STEP_DATE:
                prompt = self.selection.choose_date(custom_id, value)
                await interaction.response.edit_message(
                    content=prompt.content, view=hour_select_view(prompt)
                )
                return

            if step == STEP_HOUR:
                result = self.selection.choose_hour(
                    custom_id,
                    value,
                    guild_id=interaction.guild_id,
                    channel_id=interaction.channel_id,
                    user_id=interaction.user.id,
                )
                await interaction.response.edit_message(content=result.content, view=None)
                track(
                    "selection_completed",
                    "selection",
                    user_id=interaction.user.id,
                    channel_id=interaction.channel_id,
                    guild_id=interaction.guild_id,
                    properties={"scheduled": result.scheduled, "replaced": result.replaced},
                )
                return

            raise SelectionError(
                "This menu is out of date or invalid. Run the command again to start over."
            )
        except SelectionError as e:
            await interaction.response.send_message(str(e), ephemeral=True)

    # =========================================================================
    # Errors
    # =========================================================================

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.NoPrivateMessage):
            return

        if isinstance(error, commands.CommandNotFound):
            if ctx.guild is None:
                return
            settings = self.store.settings
            if not can_use_commands(ctx.author, settings):
                await ctx.reply(access_denied_message(settings))
                return
            await ctx.reply(f"Unknown command. Try `{ctx.prefix}show_config`")
            return

        if isinstance(error, AccessDenied):
            await ctx.reply(str(error))
            return

        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            usage = f" {ctx.command.usage}" if ctx.command and ctx.command.usage else ""
            await ctx.reply(f"Usage: `{ctx.prefix}{ctx.command.name}{usage}`")
            return

        logger.error(f"Command error: {error}", exc_info=error)
        await ctx.reply("Error while processing command.")
