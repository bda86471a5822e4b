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

"""Tests for the AOO start picker and its tokens."""

import json
import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders import ReminderQueue, SelectionError, SelectionProtocol
from reminders.selection import candidate_dates, find_next_event, valid_hours
from reminders.tokens import (
    MAX_TOKEN_LENGTH,
    STEP_DATE,
    STEP_HOUR,
    TOKEN_PREFIX,
    SelectionToken,
    TokenError,
    decode_token,
    peek_step,
)
from state import StateStore
from tools.calendar_feed import CalendarEvent

GUILD, CHANNEL, USER = 1, 2, 3


def utc(*args) -> datetime:
    return pytz.UTC.localize(datetime(*args))


def aoo_event(start, end, tag="ark_battle", event_id="A1") -> CalendarEvent:
    return CalendarEvent(id=event_id, start=start, end=end, description=f"Type: {tag}")


@pytest.fixture
def protocol():
    queue = ReminderQueue(MagicMock(), StateStore())
    return SelectionProtocol(queue, ping_text="@everyone")


def hour_token(start=utc(2025, 2, 1), end=utc(2025, 2, 3), date="2025-02-02") -> str:
    return SelectionToken(step=STEP_HOUR, start=start, end=end, date=date).encode()


class TestTokens:
    """Test the token codec."""

    def test_round_trip_and_length(self):
        raw = hour_token()
        assert raw.startswith(TOKEN_PREFIX)
        assert len(raw) <= MAX_TOKEN_LENGTH

        token = decode_token(raw, STEP_HOUR)
        assert token.start == utc(2025, 2, 1)
        assert token.end == utc(2025, 2, 3)
        assert token.date == "2025-02-02"
        assert peek_step(raw) == STEP_HOUR

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "aoo_date|1|2",
            TOKEN_PREFIX + "{not json",
            TOKEN_PREFIX + "[]",
            TOKEN_PREFIX + json.dumps({"v": 2, "k": "date", "s": 1, "e": 2}),
            TOKEN_PREFIX + json.dumps({"v": 1, "k": "date", "s": "1", "e": 2}),
            TOKEN_PREFIX + json.dumps({"v": 1, "k": "date", "s": 5, "e": 5}),
            TOKEN_PREFIX + json.dumps({"v": 1, "k": "date", "s": True, "e": 2}),
            TOKEN_PREFIX + json.dumps({"v": 1, "k": "date", "s": 1, "e": 10**20}),
        ],
    )
    def test_malformed_tokens_rejected(self, raw):
        with pytest.raises(TokenError):
            decode_token(raw, STEP_DATE)

    def test_wrong_step_rejected(self):
        with pytest.raises(TokenError):
            decode_token(hour_token(), STEP_DATE)

    def test_hour_token_needs_valid_date(self):
        raw = TOKEN_PREFIX + json.dumps({"v": 1, "k": "hour", "s": 1, "e": 2, "d": "2025-13-40"})
        with pytest.raises(TokenError):
            decode_token(raw, STEP_HOUR)

    def test_expired_window_rejected(self):
        with pytest.raises(TokenError):
            decode_token(hour_token(), STEP_HOUR, now=utc(2025, 2, 3))

    def test_peek_unknown_step(self):
        assert peek_step(TOKEN_PREFIX + json.dumps({"v": 1, "k": "minute"})) is None
        assert peek_step("something else") is None


class TestHelpers:
    """Test date/hour enumeration."""

    def test_candidate_dates_whole_days(self):
        assert candidate_dates(utc(2025, 2, 1), utc(2025, 2, 3)) == ["2025-02-01", "2025-02-02"]

    def test_candidate_dates_partial_days(self):
        dates = candidate_dates(utc(2025, 2, 1, 20), utc(2025, 2, 3, 4))
        assert dates == ["2025-02-01", "2025-02-02", "2025-02-03"]

    def test_candidate_dates_capped(self):
        assert len(candidate_dates(utc(2025, 1, 1), utc(2025, 6, 1))) == 25

    def test_valid_hours_clipped_to_window(self):
        assert valid_hours("2025-02-01", utc(2025, 2, 1, 20), utc(2025, 2, 3)) == [20, 21, 22, 23]
        assert valid_hours("2025-02-03", utc(2025, 2, 1), utc(2025, 2, 3, 2)) == [0, 1]
        assert valid_hours("2025-02-05", utc(2025, 2, 1), utc(2025, 2, 3)) == []

    def test_find_next_event_earliest_unfinished(self):
        now = utc(2025, 2, 10)
        events = [
            aoo_event(utc(2025, 2, 1), utc(2025, 2, 3), event_id="past"),
            aoo_event(utc(2025, 2, 20), utc(2025, 2, 22), event_id="later"),
            aoo_event(utc(2025, 2, 9), utc(2025, 2, 11), tag="aoo", event_id="ongoing"),
            aoo_event(utc(2025, 2, 9), utc(2025, 2, 11), tag="mge", event_id="other"),
        ]
        assert find_next_event(events, now).id == "ongoing"


class TestInitiate:
    """Step 1."""

    def test_offers_dates_of_next_event(self, protocol):
        events = [aoo_event(utc(2025, 2, 1), utc(2025, 2, 3))]

        prompt = protocol.initiate(events, now=utc(2025, 1, 30))

        assert prompt.dates == ["2025-02-01", "2025-02-02"]
        token = decode_token(prompt.token, STEP_DATE)
        assert (token.start, token.end) == (utc(2025, 2, 1), utc(2025, 2, 3))
        assert "2025-02-01 00:00 UTC" in prompt.content

    def test_no_upcoming_event(self, protocol):
        events = [aoo_event(utc(2025, 2, 1), utc(2025, 2, 3))]

        with pytest.raises(SelectionError, match="No upcoming"):
            protocol.initiate(events, now=utc(2025, 3, 1))


class TestChooseDate:
    """Step 2."""

    def test_lists_hours_and_carries_date(self, protocol):
        prompt = protocol.initiate(
            [aoo_event(utc(2025, 2, 1, 12), utc(2025, 2, 3))], now=utc(2025, 1, 30)
        )

        hours = protocol.choose_date(prompt.token, "2025-02-01", now=utc(2025, 1, 30))

        assert hours.hours == list(range(12, 24))
        assert hours.options[0] == ("12:00 UTC", "12")
        assert decode_token(hours.token, STEP_HOUR).date == "2025-02-01"

    def test_no_hours_gives_sentinel(self, protocol):
        prompt = protocol.initiate(
            [aoo_event(utc(2025, 2, 1), utc(2025, 2, 3))], now=utc(2025, 1, 30)
        )

        hours = protocol.choose_date(prompt.token, "2025-02-07", now=utc(2025, 1, 30))

        assert hours.options == [("No valid hours", "none")]

    def test_missing_or_bad_date(self, protocol):
        prompt = protocol.initiate(
            [aoo_event(utc(2025, 2, 1), utc(2025, 2, 3))], now=utc(2025, 1, 30)
        )
        with pytest.raises(SelectionError, match="No date selected"):
            protocol.choose_date(prompt.token, None, now=utc(2025, 1, 30))
        with pytest.raises(SelectionError):
            protocol.choose_date(prompt.token, "02/02/2025", now=utc(2025, 1, 30))

    def test_malformed_token(self, protocol):
        with pytest.raises(SelectionError, match="out of date or invalid"):
            protocol.choose_date("evsel:garbage", "2025-02-02", now=utc(2025, 1, 30))


class TestChooseHour:
    """Step 3."""

    def test_schedules_both_reminders(self, protocol):
        result = protocol.choose_hour(
            hour_token(), "14", GUILD, CHANNEL, USER, now=utc(2025, 2, 2, 12)
        )

        assert result.start == utc(2025, 2, 2, 14)
        assert result.scheduled == 2
        jobs = protocol.queue.pending()
        assert [job.fire_at for job in jobs] == [utc(2025, 2, 2, 13, 30), utc(2025, 2, 2, 13, 50)]
        assert all(job.channel_id == CHANNEL for job in jobs)
        assert all(job.group_key == "aoo:1:2:3" for job in jobs)
        assert "**30 minutes**" in jobs[0].message
        assert jobs[0].message.startswith("@everyone\n")
        assert "Scheduled **2** reminder(s)" in result.content

    def test_only_future_offsets_scheduled(self, protocol):
        result = protocol.choose_hour(
            hour_token(), "14", GUILD, CHANNEL, USER, now=utc(2025, 2, 2, 13, 40)
        )

        assert result.scheduled == 1
        [job] = protocol.queue.pending()
        assert job.fire_at == utc(2025, 2, 2, 13, 50)

    def test_both_offsets_past(self, protocol):
        result = protocol.choose_hour(
            hour_token(), "14", GUILD, CHANNEL, USER, now=utc(2025, 2, 2, 13, 55)
        )

        assert result.scheduled == 0
        assert protocol.queue.pending() == []
        assert "already in the past" in result.content

    def test_reselection_overwrites_previous(self, protocol):
        now = utc(2025, 2, 1, 1)
        protocol.choose_hour(hour_token(), "14", GUILD, CHANNEL, USER, now=now)
        other_user = protocol.choose_hour(hour_token(), "14", GUILD, CHANNEL, 99, now=now)

        result = protocol.choose_hour(hour_token(), "18", GUILD, CHANNEL, USER, now=now)

        assert result.replaced == 2
        assert other_user.scheduled == 2
        mine = [job for job in protocol.queue.pending() if job.group_key == "aoo:1:2:3"]
        assert [job.fire_at for job in mine] == [utc(2025, 2, 2, 17, 30), utc(2025, 2, 2, 17, 50)]
        assert len(protocol.queue.pending()) == 4

    @pytest.mark.parametrize("value", [None, "", "none", "abc", "24", "-1"])
    def test_invalid_hour_values(self, protocol, value):
        with pytest.raises(SelectionError):
            protocol.choose_hour(hour_token(), value, GUILD, CHANNEL, USER, now=utc(2025, 2, 1))
        assert protocol.queue.pending() == []

    def test_hour_outside_window(self, protocol):
        token = hour_token(start=utc(2025, 2, 1, 12), date="2025-02-01")

        with pytest.raises(SelectionError, match="outside the AOO event window"):
            protocol.choose_hour(token, "11", GUILD, CHANNEL, USER, now=utc(2025, 1, 30))

    def test_failed_step_keeps_previous_selection(self, protocol):
        now = utc(2025, 2, 1, 1)
        protocol.choose_hour(hour_token(), "14", GUILD, CHANNEL, USER, now=now)

        with pytest.raises(SelectionError):
            protocol.choose_hour(hour_token(), "none", GUILD, CHANNEL, USER, now=now)

        assert len(protocol.queue.pending()) == 2

    def test_expired_token(self, protocol):
        with pytest.raises(SelectionError):
            protocol.choose_hour(hour_token(), "14", GUILD, CHANNEL, USER, now=utc(2025, 2, 4))
