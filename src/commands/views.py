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
Discord UI Components for the AOO Start Picker

Select menus whose custom_id is the selection token of the next step.
The views hold no callbacks of their own; replies are routed by token from
EventCommands.on_interaction, so menus keep working across restarts.
"""

import discord

from reminders import DatePrompt, HourPrompt

# Discord select menus hold at most 25 options
MAX_SELECT_OPTIONS = 25


class TokenSelectView(discord.ui.View):
    """
    A single select menu carrying a continuation token.

    Features:
    - custom_id is the token the next step decodes
    - Options capped at Discord's 25
    - 5-minute timeout (routing does not depend on the view staying alive)
    """

    def __init__(
        self,
        token: str,
        placeholder: str,
        options: list[tuple[str, str]],
        timeout: float = 300.0,
    ):
        """
        Initialize the select view.

        Args:
            token: Selection token used as the menu's custom_id
            placeholder: Menu placeholder text
            options: (label, value) pairs
            timeout: View timeout in seconds (default 5 minutes)
        """
        super().__init__(timeout=timeout)
        self.token = token
        self.select = discord.ui.Select(
            custom_id=token,
            placeholder=placeholder,
            min_values=1,
            max_values=1,
            options=[
                discord.SelectOption(label=label, value=value)
                for label, value in options[:MAX_SELECT_OPTIONS]
            ],
        )
        self.add_item(self.select)


def date_select_view(prompt: DatePrompt) -> TokenSelectView:
    return TokenSelectView(
        token=prompt.token,
        placeholder="Select AOO date (UTC)",
        options=[(d, d) for d in prompt.dates],
    )


def hour_select_view(prompt: HourPrompt) -> TokenSelectView:
    return TokenSelectView(
        token=prompt.token,
        placeholder="Select AOO start hour (UTC)",
        options=prompt.options,
    )
