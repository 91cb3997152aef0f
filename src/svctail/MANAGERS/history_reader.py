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
One-off reading of everything a run log currently holds.
"""
import logging
from typing import List

from ..errors import LogParseError, LogSourceError
from ..MODELS.log_line import LogLine
from ..MODELS.log_source import HistoricalRead, LogSource
from ..PARSERS.log_line_parser import parse_log_line

logger = logging.getLogger(__name__)


def decode_line(data: bytes) -> str:
    """
    Decodes a raw run log line, replacing invalid UTF-8 rather than failing.
    """
    return data.decode("utf-8", errors="replace")


def read_history(source: LogSource) -> HistoricalRead:
    """
    Reads and parses every complete line currently in a run log.

    A final line without a newline is still being written; it is left for
    the follower and not counted.

    :param source: The run log to read.
    :return: Parsed entries with the line count and byte offset reached.
    :raises LogSourceError: If the run log cannot be opened or read.
    :raises LogParseError: If any line is not a valid entry. Nothing is
                           returned for the source in that case.
    """
    entries: List[LogLine] = []
    lines_consumed = 0
    offset = 0

    try:
        f = open(source.path, "rb")
    except OSError as e:
        raise LogSourceError(source.path, e.strerror or str(e)) from e

    with f:
        try:
            for data in f:
                if not data.endswith(b"\n"):
                    break
                lines_consumed += 1
                offset += len(data)
                try:
                    entries.append(parse_log_line(decode_line(data), source.service_name))
                except LogParseError as e:
                    raise e.locate(source.path, lines_consumed) from e
        except OSError as e:
            raise LogSourceError(source.path, e.strerror or str(e)) from e

    logger.debug("Read %d lines (%d bytes) from %s", lines_consumed, offset, source.path)
    return HistoricalRead(
        source=source,
        entries=entries,
        lines_consumed=lines_consumed,
        offset=offset,
    )
