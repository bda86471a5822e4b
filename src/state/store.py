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
State Store Module

Single JSON document holding bot settings, fired milestone flags and the
reminder queue. The document is read once at startup and rewritten wholesale
on every mutation.

Layout:
    {
        "scheduled": [ {id, channelId, runAtMs, message, sent, groupKey}, ... ],
        "config": {pingChannelId, accessRoleId, aooTeamRoleId, mgeChannelId, mgeRoleId},
        "<flag key>": true,
        ...
    }
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import pytz

from .models import GuildSettings, ReminderJob

logger = logging.getLogger("kingdomherald.state.store")

RESERVED_KEYS = ("scheduled", "config")


class StateStore:
    """
    Owner of all persisted bot state.

    Every mutating method saves before returning. Pass path=None for an
    in-memory store that never touches the disk, or read_only=True to load
    a document without ever writing or moving it.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, read_only: bool = False):
        self.path = Path(path) if path is not None else None
        self.read_only = read_only
        self._settings = GuildSettings()
        self._jobs: list[ReminderJob] = []
        self._flags: dict[str, bool] = {}

    @classmethod
    def open(cls, state_dir: Union[str, Path], filename: str = "state.json") -> "StateStore":
        """Create the state directory if needed and load the document in it."""
        state_dir = Path(state_dir)
        try:
            state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create state directory {state_dir}: {e}")
        store = cls(state_dir / filename)
        store.load()
        return store

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> dict[str, Any]:
        """
        Read the persisted document into memory.

        A missing file or unreadable JSON is treated as "nothing persisted yet".
        Unreadable files are renamed aside so the next save does not destroy them.

        Returns:
            The raw document that was loaded (empty dict on first run)
        """
        document = self._read_document()
        self._apply_document(document)
        logger.info(
            f"Loaded state: {len(self._jobs)} scheduled, {len(self._flags)} milestone flags"
        )
        return document

    def _read_document(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"State file {self.path} unreadable ({e}), starting empty")
            self._quarantine()
            return {}

        if not isinstance(document, dict):
            logger.warning(f"State file {self.path} is not a JSON object, starting empty")
            self._quarantine()
            return {}
        return document

    def _quarantine(self) -> None:
        if self.read_only:
            return
        ts =datetime.now(pytz.UTC).strftime("%Y%m%d-%H%M%S")
        corrupt_path = self.path.with_name(f"{self.path.name}.corrupt.{ts}")
        try:
            self.path.rename(corrupt_path)
            logger.warning(f"Moved unreadable state file to {corrupt_path.name}")
        except OSError as e:
            logger.error(f"Could not move unreadable state file aside: {e}")

    def _apply_document(self, document: dict[str, Any]) -> None:
        config = document.get("config")
        self._settings = GuildSettings.from_dict(config if isinstance(config, dict) else None)

        self._jobs = []
        scheduled = document.get("scheduled")
        for raw in scheduled if isinstance(scheduled, list) else []:
            try:
                self._jobs.append(ReminderJob.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed scheduled entry {raw!r}: {e}")

        self._flags = {
            key: True
            for key, value in document.items()
            if key not in RESERVED_KEYS and value is True
        }

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "scheduled": [job.to_dict() for job in self._jobs],
            "config": self._settings.to_dict(),
        }
        document.update(self._flags)
        return document

    def save(self) -> bool:
        """
        Write the whole document (temp file, then rename over the live file).

        Disk errors are logged, not raised; the in-memory state stays
        authoritative until the next successful save.

        Returns:
            True if the document reached disk (always True for in-memory
            stores, always False for read-only ones)
        """
        if self.path is None:
            return True
        if self.read_only:
            return False

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.to_document(), f, indent=2)
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save state to {self.path}: {e}")
            return False

    # =========================================================================
    # Settings
    # =========================================================================

    @property
    def settings(self) -> GuildSettings:
        """A copy of the current settings; mutate through update_settings()."""
        return GuildSettings(**vars(self._settings))

    def update_settings(self, **changes: Optional[int]) -> GuildSettings:
        """
        Set one or more settings fields and persist.

        Raises:
            ValueError: If a field name is unknown
        """
        unknown = set(changes) - GuildSettings.field_names()
        if unknown:
            raise ValueError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            setattr(self._settings, name, value)
        self.save()
        return self.settings

    # =========================================================================
    # Milestone flags
    # =========================================================================

    def is_fired(self, key: str) -> bool:
        return self._flags.get(key, False)

    def mark_fired(self, key: str) -> None:
        """Set a milestone flag. Flags are never unset."""
        if key in RESERVED_KEYS:
            raise ValueError(f"Flag key collides with reserved key: {key}")
        self._flags[key] = True
        self.save()

    def fired_flags(self) -> list[str]:
        return sorted(self._flags)

    # =========================================================================
    # Reminder jobs
    # =========================================================================

    @property
    def jobs(self) -> list[ReminderJob]:
        """Snapshot of the queue in insertion order."""
        return list(self._jobs)

    def add_job(self, job: ReminderJob) -> None:
        self._jobs.append(job)
        self.save()

    def remove_jobs(self, predicate: Callable[[ReminderJob], bool]) -> int:
        """
        Remove every job matching predicate.

        Persists only when something was removed.

        Returns:
            Number of jobs removed
        """
        before = len(self._jobs)
        self._jobs = [job for job in self._jobs if not predicate(job)]
        removed = before - len(self._jobs)
        if removed:
            self.save()
        return removed

    def commit_sweep(self, sent_ids: Iterable[str]) -> int:
        """
        Mark the given jobs sent, then evict every sent job.

        Persists once, and only if something changed.

        Returns:
            Number of jobs evicted
        """
        sent_ids = set(sent_ids)
        for job in self._jobs:
            if job.id in sent_ids:
                job.sent = True

        before = len(self._jobs)
        self._jobs = [job for job in self._jobs if not job.sent]
        evicted = before - len(self._jobs)
        if sent_ids or evicted:
            self.save()
        return evicted
