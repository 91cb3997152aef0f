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
Parser for run log lines.

Each line of a run log is a JSON object of the form::

    {"name": "web", "time": "2024-05-01T10:00:01.123456789Z", "stream": "stdout", "message": "..."}
"""
from typing import Optional

from pydantic import ValidationError

from ..errors import LogParseError
from ..MODELS.log_line import LogLine


def parse_log_line(raw: str, service_name: Optional[str] = None) -> LogLine:
    """
    Parses one line of a run log.

    :param raw: The line, with or without its line terminator.
    :param service_name: Name of the service owning the run log. Overrides
                         whatever name the line itself carries.
    :return: The parsed line. The message is kept exactly as written.
    :raises LogParseError: If the line is not a valid run log entry.
    """
    text = raw.rstrip("\r\n")
    if not text.strip():
        raise LogParseError(text, "blank line")

    try:
        line = LogLine.model_validate_json(text)
    except ValidationError as e:
        # Only the first problem is interesting, the rest tend to cascade
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        reason = f"{location}: {error['msg']}" if location else error["msg"]
        raise LogParseError(text, reason) from e

    if service_name is not None:
        line.service_name = service_name
    return line
