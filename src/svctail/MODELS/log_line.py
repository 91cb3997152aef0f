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
Models for single lines of service output as stored in run logs.
"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# RFC3339 timestamps may carry up to nanosecond precision
_FRACTION = re.compile(r"(\.\d{6})\d+")


class LogStream(str, Enum):
    """
    Where a line of output came from.
    """
    STDOUT = "stdout"
    STDERR = "stderr"
    # Lines written by the service manager itself, e.g. lifecycle notices
    MESSAGES = "messages"


class LogLine(BaseModel):
    """
    One line of output from a service.

    On the wire the service name and timestamp are keyed ``name`` and ``time``.
    """
    model_config = ConfigDict(populate_by_name=True)

    service_name: str = Field(default="", alias="name")
    timestamp: datetime = Field(alias="time")
    stream: LogStream
    message: str

    @field_validator("timestamp", mode="before")
    @classmethod
    def _truncate_fraction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _FRACTION.sub(r"\1", value, count=1)
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def display_message(self) -> str:
        """
        The message as it should be shown, without surrounding whitespace.
        """
        return self.message.strip()
