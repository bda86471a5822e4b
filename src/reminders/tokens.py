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
Selection Tokens

The AOO start picker keeps no session on the bot side: everything the next
step needs travels in the select menu's custom_id. Tokens are a prefix plus
compact, versioned JSON, e.g.

    evsel:{"v":1,"k":"hour","s":1738368000,"e":1738540800,"d":"2025-02-02"}

Discord caps custom_id at 100 characters.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

import pytz

TOKEN_PREFIX = "evsel:"
SCHEMA_VERSION = 1
MAX_TOKEN_LENGTH = 100

STEP_DATE = "date"
STEP_HOUR = "hour"
STEPS = (STEP_DATE, STEP_HOUR)


class TokenError(Exception):
    """Raised for malformed, outdated or expired selection tokens."""

    pass


def is_selection_token(raw: Optional[str]) -> bool:
    return bool(raw) and raw.startswith(TOKEN_PREFIX)


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


@dataclass(frozen=True)
class SelectionToken:
    """Continuation state of one picker step."""

    step: str
    start: datetime
    end: datetime
    date: Optional[str] = None

    def encode(self) -> str:
        payload: dict[str, Any] = {
            "v": SCHEMA_VERSION,
            "k": self.step,
            "s": _epoch(self.start),
            "e": _epoch(self.end),
        }
        if self.date is not None:
            payload["d"] = self.date

        token = TOKEN_PREFIX + json.dumps(payload, separators=(",", ":"))
        if len(token) > MAX_TOKEN_LENGTH:
            raise TokenError(f"Token too long ({len(token)} chars)")
        return token

    def with_date(self, date_iso: str) -> "SelectionToken":
        return SelectionToken(step=STEP_HOUR, start=self.start, end=self.end, date=date_iso)


def parse_date(value: Any) -> date:
    """Parse a strict YYYY-MM-DD string."""
    if not isinstance(value, str) or len(value) != 10:
        raise TokenError(f"Invalid date: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise TokenError(f"Invalid date: {value!r}") from e


def decode_token(raw: Optional[str], expected_step: str, now: Optional[datetime] = None) -> SelectionToken:
    """
    Parse and validate a token.

    Args:
        raw: The custom_id received with the interaction
        expected_step: STEP_DATE or STEP_HOUR
        now: If given, tokens whose window has ended are rejected as expired

    Raises:
        TokenError: If the token is malformed, from another schema version,
            for a different step, or expired
    """
    if not is_selection_token(raw):
        raise TokenError("Not a selection token")

    try:
        payload = json.loads(raw[len(TOKEN_PREFIX):])
    except ValueError as e:
        raise TokenError("Token payload is not valid JSON") from e

    if not isinstance(payload, dict):
        raise TokenError("Token payload is not an object")
    if payload.get("v") != SCHEMA_VERSION:
        raise TokenError(f"Unsupported token version: {payload.get('v')!r}")
    if payload.get("k") != expected_step:
        raise TokenError(f"Expected a {expected_step} token, got {payload.get('k')!r}")

    start_s, end_s = payload.get("s"), payload.get("e")
    # bool is an int subclass; reject it explicitly
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (start_s, end_s)):
        raise TokenError("Token window bounds must be integers")
    if start_s >= end_s:
        raise TokenError("Token window is empty")

    date_iso = payload.get("d")
    if expected_step == STEP_HOUR:
        parse_date(date_iso)
    elif date_iso is not None:
        raise TokenError("Unexpected date in a date-step token")

    try:
        token = SelectionToken(
            step=expected_step,
            start=datetime.fromtimestamp(start_s, tz=pytz.UTC),
            end=datetime.fromtimestamp(end_s, tz=pytz.UTC),
            date=date_iso,
        )
    except (OverflowError, OSError, ValueError) as e:
        raise TokenError("Token window bounds out of range") from e
    if now is not None and token.end <= now:
        raise TokenError("This event window has already ended")
    return token


def peek_step(raw: Optional[str]) -> Optional[str]:
    """Which step a token belongs to, without validating the rest of it."""
    if not is_selection_token(raw):
        return None
    try:
        payload = json.loads(raw[len(TOKEN_PREFIX):])
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    step = payload.get("k")
    return step if step in STEPS else None
