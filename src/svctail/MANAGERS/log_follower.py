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
Live following of a run log after its history has been read.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import LogParseError, LogSourceError
from ..MODELS.log_line import LogLine
from ..MODELS.log_source import HistoricalRead, LogSource
from ..PARSERS.log_line_parser import parse_log_line
from ..UTILS.settings import HandoffMode
from .history_reader import decode_line

logger = logging.getLogger(__name__)


@dataclass
class FollowerFailure:
    """A follower that stopped because of an error."""

    source: LogSource
    error: Exception


class LogFollower:
    """
    Follows one run log in a background thread, putting each newly written
    line on a shared queue.

    The follower picks up exactly where the historical scan stopped, either
    by seeking to the scan's byte offset or by re-reading the file and
    discarding as many lines as the scan consumed.

    Appends are the only change handled; truncating, rotating or deleting
    the run log while it is followed is not detected.
    """

    def __init__(
        self,
        history: HistoricalRead,
        sink: queue.Queue,
        stop_event: threading.Event,
        handoff: HandoffMode = HandoffMode.OFFSET,
        poll_interval: float = 0.1,
        on_failure: Optional[Callable[[FollowerFailure], None]] = None,
    ):
        """
        Initializes the follower.

        :param history: Result of the historical scan of the same source.
        :param sink: Queue to put parsed lines on.
        :param stop_event: Set to stop following.
        :param handoff: How to skip what the scan already returned.
        :param poll_interval: Seconds to wait when no new output is available.
        :param on_failure: Called from the follower thread if it stops on an error.
        """
        self.source = history.source
        self.skip_lines = history.lines_consumed
        self.offset = history.offset
        self.sink = sink
        self.stop_event = stop_event
        self.handoff = HandoffMode(handoff)
        self.poll_interval = poll_interval
        self.on_failure = on_failure
        self.delivered = 0
        self.failure: Optional[FollowerFailure] = None
        self.thread = None

    def start(self):
        """
        Starts the follower thread.
        """
        self.thread = threading.Thread(
            target=self._run,
            name=f"follow-{self.source.service_name}",
            daemon=True,
        )
        self.thread.start()

    def join(self, timeout: Optional[float] = None):
        """
        Waits for the follower thread to finish.
        """
        if self.thread:
            self.thread.join(timeout)

    def is_alive(self) -> bool:
        """
        Whether the follower is still following.
        """
        return self.thread is not None and self.thread.is_alive()

    def _run(self):
        """
        Thread entry point; turns errors into a recorded failure.
        """
        try:
            self._follow()
        except (LogSourceError, LogParseError) as e:
            self.failure = FollowerFailure(source=self.source, error=e)
            # Reported to the user through on_failure
            logger.info("Stopped following %s: %s", self.source.service_name, e)
            if self.on_failure:
                self.on_failure(self.failure)
        finally:
            logger.debug("Follower for %s delivered %d lines",
                         self.source.service_name, self.delivered)

    def _follow(self):
        """
        Reads appended lines until stopped.
        """
        try:
            f = open(self.source.path, "rb")
        except OSError as e:
            raise LogSourceError(self.source.path, e.strerror or str(e)) from e

        with f:
            skipped = 0
            if self.handoff == HandoffMode.OFFSET:
                f.seek(self.offset)
                skipped = self.skip_lines
                line_number = self.skip_lines
            else:
                line_number = 0
            logger.debug(
                "Following %s from %s",
                self.source.path,
                f"byte {self.offset}" if self.handoff == HandoffMode.OFFSET
                else f"line {self.skip_lines + 1}",
            )

            pending = b""
            while not self.stop_event.is_set():
                try:
                    data = f.readline()
                except OSError as e:
                    raise LogSourceError(self.source.path, e.strerror or str(e)) from e

                if not data:
                    self.stop_event.wait(self.poll_interval)
                    continue

                # Keep partial writes until the rest of the line arrives
                pending += data
                if not pending.endswith(b"\n"):
                    continue
                data, pending = pending, b""
                line_number += 1

                if skipped < self.skip_lines:
                    skipped += 1
                    continue

                try:
                    line = parse_log_line(decode_line(data), self.source.service_name)
                except LogParseError as e:
                    raise e.locate(self.source.path, line_number) from e
                if not self._deliver(line):
                    return

    def _deliver(self, line: LogLine) -> bool:
        """
        Puts a line on the sink, blocking while it is full.

        :return: False if the follower was stopped before the line could be queued.
        """
        while not self.stop_event.is_set():
            try:
                self.sink.put(line, timeout=self.poll_interval)
            except queue.Full:
                continue
            self.delivered += 1
            return True
        return False
