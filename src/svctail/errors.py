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
Exceptions raised while resolving, reading and following service logs.
"""
from typing import Optional


class SvctailError(Exception):
    """Base class for every error svctail reports to its caller."""


class UsageError(SvctailError, ValueError):
    """
    The caller asked for something that cannot be done, such as tailing
    an empty selection.
    """


class ConfigError(SvctailError):
    """The service configuration file is malformed or inconsistent."""


class ResolutionError(SvctailError, LookupError):
    """
    A requested name matches neither a service nor a group.
    """
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Service or group not found: {name}")


class LogSourceError(SvctailError, IOError):
    """
    A run log could not be opened or read.
    """
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read run log {path}: {reason}")


class LogParseError(SvctailError, ValueError):
    """
    A run log line could not be interpreted.

    :param raw: The offending line, without its line terminator.
    :param reason: Why parsing failed.
    :param path: Run log the line came from, when known.
    :param line_number: 1-based position of the line in the run log, when known.
    """
    def __init__(self,
                 raw: str,
                 reason: str,
                 path: Optional[str] = None,
                 line_number: Optional[int] = None):
        self.raw = raw
        self.reason = reason
        self.path = path
        self.line_number = line_number
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = ""
        if self.path:
            where = f" in {self.path}"
            if self.line_number is not None:
                where += f":{self.line_number}"
        return f"Invalid log line{where}: {self.reason}"

    def locate(self, path: str, line_number: int) -> "LogParseError":
        """
        Returns a copy of this error annotated with where the line was read.
        """
        return LogParseError(self.raw, self.reason, path=path, line_number=line_number)
