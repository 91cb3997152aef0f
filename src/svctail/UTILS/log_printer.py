# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Formatting of aggregated log lines for the terminal.
"""
from typing import Callable, Optional

import click

from ..MODELS.log_line import LogLine, LogStream

MANAGER_LABEL = "svctail"


class LogPrinter:
    """
    Prints log lines, labelled with their service when several are shown.
    """
    def __init__(self, multiple: bool, echo: Callable[..., None] = click.echo):
        """
        :param multiple: Prefix each line with the name of its service.
        :param echo: Output function, called with the formatted line.
        """
        self.multiple = multiple
        self.echo = echo

    def format(self, line: LogLine) -> Optional[str]:
        """
        Builds the text to display for a line.

        :return: The styled text, or None if the message is blank.
        """
        message = line.display_message()
        if not message:
            return None

        prefix = ""
        if self.multiple:
            label = line.service_name
            if line.stream == LogStream.MESSAGES:
                label += f" ({MANAGER_LABEL})"
            prefix = "[" + click.style(label, fg="bright_yellow") + "]: "

        if line.stream == LogStream.STDERR:
            message = click.style(message, fg="red")
        elif line.stream == LogStream.MESSAGES:
            message = click.style(message, fg="yellow")

        return prefix + message

    def __call__(self, line: LogLine):
        text = self.format(line)
        if text is not None:
            self.echo(text)
