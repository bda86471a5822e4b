"""
kingdomherald Discord Bot

Announces registration milestones from the kingdom event calendar and lets
members schedule countdown reminders for the AOO start time.
"""

import asyncio
import logging
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

import analytics
from announcements import AnnouncementScheduler, MilestoneEngine
from commands.event_commands import EventCommands
from config import BotConfig, ConfigError
from reminders import ReminderQueue, ReminderScheduler, SelectionProtocol
from state import StateStore
from tools.calendar_feed import CalendarFeedClient

load_dotenv()

# Discord message length limit
DISCORD_MAX_LENGTH = 2000

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("kingdomherald")


class ChannelUnavailableError(Exception):
    """Raised when a target channel does not exist or cannot take messages."""

    pass


class DiscordBot(commands.Bot):
    """Discord bot running the announcement and reminder loops."""

    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.messages = True

        super().__init__(
            command_prefix=config.command_prefix,
            intents=intents,
            help_command=None,
        )

        self.config = config
        self.store: Optional[StateStore] = None
        self.calendar: Optional[CalendarFeedClient] = None
        self.announcement_scheduler: Optional[AnnouncementScheduler] = None
        self.reminder_scheduler: Optional[ReminderScheduler] = None

    async def setup_hook(self):
        """Called when the bot is starting up."""
        config = self.config
        logger.info(f"Setup: STATE_DIR={config.state_dir}")
        logger.info(f"Setup: CHECK_EVERY_MINUTES={config.check_every_minutes}")
        logger.info(f"Setup: SWEEP_SECONDS={config.sweep_seconds}")
        logger.info(f"Setup: analytics={'enabled' if analytics.is_enabled() else 'disabled'}")

        self.store = StateStore.open(config.state_dir)
        self.calendar = CalendarFeedClient(config.ics_url, timeout=config.calendar_timeout)

        engine = MilestoneEngine(self, self.calendar, self.store, ping_text=config.ping_text)
        queue = ReminderQueue(self, self.store)
        selection = SelectionProtocol(queue, ping_text=config.ping_text)

        await self.add_cog(EventCommands(self, self.store, queue, selection, self.calendar))

        # Both loops wait for on_ready, then run their first cycle immediately
        self.announcement_scheduler = AnnouncementScheduler(
            self, engine, interval_minutes=config.check_every_minutes
        )
        self.reminder_scheduler = ReminderScheduler(
            self, queue, interval_seconds=config.sweep_seconds
        )
        self.announcement_scheduler.start()
        self.reminder_scheduler.start()

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self):
        """Clean up resources on shutdown."""
        if self.announcement_scheduler:
            self.announcement_scheduler.stop()
        if self.reminder_scheduler:
            self.reminder_scheduler.stop()
        if self.calendar:
            await self.calendar.close()
        await analytics.shutdown()
        await super().close()

    # --- Messaging ---

    async def send_message(self, channel_id: int, content: str) -> discord.Message:
        """
        Send a message to a channel.

        Raises:
            ChannelUnavailableError: If the channel is gone or not text-based
            discord.HTTPException: If Discord rejects the message
        """
        channel = self.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden) as e:
                raise ChannelUnavailableError(f"Channel {channel_id} unavailable: {e}") from e

        if not isinstance(channel, discord.abc.Messageable):
            raise ChannelUnavailableError(f"Channel {channel_id} is not text-based")

        # Truncate if too long (announcements are sent as one message)
        if len(content) > DISCORD_MAX_LENGTH:
            content = content[: DISCORD_MAX_LENGTH - 20] + "\n\n[...truncated]"
        return await channel.send(content)


async def main():
    """Run the bot."""
    try:
        config = BotConfig.from_env()
        config.validate()
    except ConfigError as e:
        print(f"Error: {e}")
        print("Please set it in your .env file")
        return

    bot = DiscordBot(config)
    async with bot:
        await bot.start(config.discord_token)


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
