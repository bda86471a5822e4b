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
Bot Configuration

Process-level settings read from the environment (and .env via python-dotenv).
Per-server settings set by operators live in the state store instead.
"""

import os
from dataclasses import dataclass
from typing import Optional


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _positive_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass
class BotConfig:
    """Configuration for the bot process."""

    discord_token: Optional[str] = None
    ics_url: Optional[str] = None

    # First line of every announcement and reminder
    ping_text: str = "@everyone"
    command_prefix: str = "!"

    # Loop periods
    check_every_minutes: float = 10
    sweep_seconds: float = 30

    # Directory holding state.json
    state_dir: str = "/data"

    # Seconds before a calendar fetch gives up
    calendar_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "BotConfig":
        """Create config from environment variables with defaults."""
        return cls(
            discord_token=os.getenv("DISCORD_TOKEN"),
            ics_url=os.getenv("ICS_URL"),
            ping_text=os.getenv("PING_TEXT", "@everyone"),
            command_prefix=os.getenv("PREFIX", "!"),
            check_every_minutes=_positive_float("CHECK_EVERY_MINUTES", "10"),
            sweep_seconds=_positive_float("SWEEP_SECONDS", "30"),
            state_dir=os.getenv("STATE_DIR", "/data"),
            calendar_timeout=_positive_float("CALENDAR_TIMEOUT", "30"),
        )

    def validate(self) -> None:
        """
        Raises:
            ConfigError: If the token or feed URL is missing
        """
        missing = [
            name
            for name, value in (("DISCORD_TOKEN", self.discord_token), ("ICS_URL", self.ics_url))
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing env vars: {' or '.join(missing)}")
