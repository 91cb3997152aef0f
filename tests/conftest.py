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
Shared fixtures for writing run logs and collecting live output.
"""
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import pytest

from svctail.MODELS.log_line import LogLine, LogStream

BASE_TIME = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class RunLogWriter:
    """
    Appends lines of output for a single service to its run log, the way a
    service manager records them.

    Each entry is written and flushed with its trailing newline in a single
    call, so readers never see half an entry followed by another one.
    """
    def __init__(self, service_name: str, log_file: str):
        self.service_name = service_name
        self.log_file = log_file
        self._lock = threading.Lock()
        self._handle = None

    def open(self) -> "RunLogWriter":
        if self._handle is None:
            log_dir = os.path.dirname(self.log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            self._handle = open(self.log_file, 'a', encoding='utf-8')
        return self

    def write(self,
              message: str,
              stream: Union[LogStream, str] = LogStream.STDOUT,
              timestamp: Optional[datetime] = None) -> LogLine:
        """
        Records one line of output; the timestamp defaults to now.
        """
        line = LogLine(
            service_name=self.service_name,
            timestamp=timestamp or datetime.now(timezone.utc),
            stream=LogStream(stream),
            message=message,
        )
        data = line.model_dump_json(by_alias=True)
        with self._lock:
            self.open()
            self._handle.write(data + "\n")
            self._handle.flush()
        return line

    def close(self):
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None


@pytest.fixture
def at():
    """Returns a function mapping seconds past 10:00:00 to a timestamp."""
    def _at(seconds: float) -> datetime:
        return BASE_TIME + timedelta(seconds=seconds)
    return _at


@pytest.fixture
def run_log(tmp_path):
    """
    Factory for run log writers, closed after the test.

    Run logs go to tmp_path/logs/<service>.log unless a path is given.
    """
    writers = []

    def _make(service_name: str, log_file: Optional[str] = None) -> RunLogWriter:
        path = log_file or str(tmp_path / "logs" / f"{service_name}.log")
        writer = RunLogWriter(service_name, path)
        writers.append(writer.open())
        return writer

    yield _make

    for writer in writers:
        writer.close()


@pytest.fixture
def collect():
    """
    Returns a function taking up to ``count`` items from a live iterator.

    ``stop`` is called if the items do not arrive within ``timeout`` seconds,
    which must end the iteration.
    """
    def _collect(iterator, count, stop, timeout=5.0):
        timer = threading.Timer(timeout, stop)
        timer.daemon = True
        timer.start()
        items = []
        try:
            if count == 0:
                return items
            for item in iterator:
                items.append(item)
                if len(items) >= count:
                    break
        finally:
            timer.cancel()
        return items
    return _collect
