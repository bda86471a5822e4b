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
Reminders Package

One-shot countdown reminders: the persisted queue, its sweep loop, and the
AOO start picker that fills it.
"""

from .queue import ReminderQueue
from .scheduler import ReminderScheduler
from .selection import (
    DatePrompt,
    HourPrompt,
    SelectionError,
    SelectionProtocol,
    SelectionResult,
)
from .tokens import STEP_DATE, STEP_HOUR, TokenError, is_selection_token, peek_step

__all__ = [
    "STEP_DATE",
    "STEP_HOUR",
    "DatePrompt",
    "HourPrompt",
    "ReminderQueue",
    "ReminderScheduler",
    "SelectionError",
    "SelectionProtocol",
    "SelectionResult",
    "TokenError",
    "is_selection_token",
    "peek_step",
]
