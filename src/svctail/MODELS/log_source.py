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
Models for run logs being aggregated and the result of reading them.
"""
from typing import List

from pydantic import BaseModel

from .log_line import LogLine


class LogSource(BaseModel):
    """
    The run log of one launchable service.
    """
    service_name: str
    path: str


class HistoricalRead(BaseModel):
    """
    Everything read from a run log during the initial scan.

    ``lines_consumed`` and ``offset`` both mark where the scan stopped, so a
    follower can continue from there without repeating or missing lines.
    """
    source: LogSource
    entries: List[LogLine] = []
    lines_consumed: int = 0
    offset: int = 0
