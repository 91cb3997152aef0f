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
Log aggregation and tailing for services.

A session runs in two phases. First every run log is read in full and the
combined history is returned oldest first. Then one follower per run log is
started and their output is merged, as it arrives, through a single queue.
"""
import logging
import queue
import threading
from typing import Callable, Iterator, List, Optional, Sequence

from ..errors import UsageError
from ..MODELS.log_line import LogLine
from ..MODELS.log_source import HistoricalRead, LogSource
from ..MODELS.orchestration_config import ServiceOrGroup
from ..RUNNERS.source_resolver import count_services, resolve_sources
from ..UTILS.settings import Settings
from .history_reader import read_history
from .log_follower import FollowerFailure, LogFollower

logger = logging.getLogger(__name__)


def merge_history(reads: Sequence[HistoricalRead]) -> List[LogLine]:
    """
    Combines the histories of several run logs into one sequence.

    The sort is stable: lines with equal timestamps stay in scan order,
    then in the order they appear in their own run log.

    :param reads: Historical reads in scan order.
    :return: Every entry, oldest first.
    """
    lines = [line for read in reads for line in read.entries]
    lines.sort(key=lambda line: line.timestamp)
    return lines


class AggregationSession:
    """
    Aggregates and tails logs from the run logs of a selection of services.

    Example:
        >>> with AggregationSession(config.get_services_or_groups(["web"])) as session:
        ...     for line in session.history():
        ...         print(line.message)
        ...     for line in session.live():
        ...         print(line.message)
    """
    def __init__(self,
                 selection: Sequence[ServiceOrGroup],
                 settings: Optional[Settings] = None,
                 on_error: Optional[Callable[[FollowerFailure], None]] = None):
        """
        Initializes the session.

        :param selection: Services and groups whose logs to aggregate.
        :param settings: Polling, handoff and queue settings.
        :param on_error: Called when a live follower stops on an error.
        :raises UsageError: If the selection is empty.
        """
        if not selection:
            raise UsageError("At least one service or group must be specified")

        self.selection = list(selection)
        self.settings = settings or Settings()
        self.on_error = on_error
        self.multiple = count_services(self.selection) > 1

        self.sources: List[LogSource] = []
        self.channel: queue.Queue = queue.Queue(maxsize=self.settings.queue_size)
        self.failures: List[FollowerFailure] = []
        self.followers: List[LogFollower] = []

        self._reads: Optional[List[HistoricalRead]] = None
        self._stop_event = threading.Event()
        self._failures_lock = threading.Lock()

    def history(self) -> List[LogLine]:
        """
        Reads every run log as it is now and returns the combined history.

        Run logs are read one after the other, in resolution order. Any
        failure aborts the whole session; no follower is started.

        :return: All entries, sorted by timestamp.
        :raises LogSourceError: If a run log cannot be opened.
        :raises LogParseError: If a run log holds an invalid line.
        """
        if self._reads is not None:
            raise RuntimeError("History has already been read for this session")

        self.sources = resolve_sources(self.selection)
        logger.debug("Aggregating %d run logs: %s",
                     len(self.sources),
                     ", ".join(source.service_name for source in self.sources))

        reads = [read_history(source) for source in self.sources]
        self._reads = reads
        return merge_history(reads)

    def live(self) -> Iterator[LogLine]:
        """
        Starts following every run log and yields new lines as they arrive.

        Lines from one run log arrive in the order they were written; there is
        no ordering across run logs. Iteration ends when the session is closed
        or once every follower has stopped and nothing is left to deliver.

        :raises RuntimeError: If called before history() or more than once.
        """
        if self._reads is None:
            raise RuntimeError("history() must be read before following live output")
        if self.followers:
            raise RuntimeError("Live output can only be followed once per session")

        self._start_followers()
        return self._drain()

    def run(self, emit: Callable[[LogLine], None]):
        """
        Emits the history, then every live line until the session is closed.

        :param emit: Called once per line, on the calling thread.
        """
        for line in self.history():
            emit(line)
        for line in self.live():
            emit(line)

    def close(self, timeout: Optional[float] = None):
        """
        Stops every follower and waits for them to release their run logs.

        :param timeout: Seconds to wait for each follower thread.
        """
        self._stop_event.set()
        for follower in self.followers:
            follower.join(timeout)

    @property
    def closed(self) -> bool:
        return self._stop_event.is_set()

    def __enter__(self) -> "AggregationSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _start_followers(self):
        for read in self._reads:
            follower = LogFollower(
                read,
                self.channel,
                self._stop_event,
                handoff=self.settings.handoff,
                poll_interval=self.settings.poll_interval,
                on_failure=self._record_failure,
            )
            self.followers.append(follower)
            follower.start()

    def _drain(self) -> Iterator[LogLine]:
        while not self._stop_event.is_set():
            try:
                yield self.channel.get(timeout=self.settings.poll_interval)
            except queue.Empty:
                # Check emptiness after liveness so a line put just before a
                # follower exits is not lost
                if not any(follower.is_alive() for follower in self.followers) \
                        and self.channel.empty():
                    return

    def _record_failure(self, failure: FollowerFailure):
        with self._failures_lock:
            self.failures.append(failure)
        if self.on_error:
            self.on_error(failure)
