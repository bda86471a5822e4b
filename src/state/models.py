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
State Models

Records held by the state document. Field names on disk are camelCase so an
existing state.json keeps loading unchanged.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Optional

import pytz


def _as_id(value: Any) -> Optional[int]:
    """Coerce a stored snowflake (int or numeric string) to int."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=pytz.UTC)


@dataclass
class GuildSettings:
    """Operator-set identifiers read by announcements and access checks."""

    announcement_channel_id: Optional[int] = None
    access_role_id: Optional[int] = None
    team_role_id: Optional[int] = None
    secondary_channel_id: Optional[int] = None
    secondary_role_id: Optional[int] = None

    # attribute name -> key in the persisted "config" object
    _KEYS = {
        "announcement_channel_id": "pingChannelId",
        "access_role_id": "accessRoleId",
        "team_role_id": "aooTeamRoleId",
        "secondary_channel_id": "mgeChannelId",
        "secondary_role_id": "mgeRoleId",
    }

    def to_dict(self) -> dict[str, Optional[str]]:
        out = {}
        for attr, key in self._KEYS.items():
            value = getattr(self, attr)
            out[key] = str(value) if value is not None else None
        return out

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "GuildSettings":
        data = data or {}
        return cls(**{attr: _as_id(data.get(key)) for attr, key in cls._KEYS.items()})

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}


@dataclass
class ReminderJob:
    """A one-shot message due at fire_at in a channel."""

    id: str
    channel_id: int
    fire_at: datetime
    message: str
    sent: bool = False
    group_key: Optional[str] = None

    def is_due(self, now: datetime) -> bool:
        return not self.sent and self.fire_at <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channelId": str(self.channel_id),
            "runAtMs": to_epoch_ms(self.fire_at),
            "message": self.message,
            "sent": self.sent,
            "groupKey": self.group_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReminderJob":
        return cls(
            id=str(data["id"]),
            channel_id=int(data["channelId"]),
            fire_at=from_epoch_ms(int(data["runAtMs"])),
            message=str(data.get("message", "")),
            sent=bool(data.get("sent", False)),
            group_key=data.get("groupKey") or None,
        )
