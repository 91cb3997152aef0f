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
Runtime settings read from the environment and logging setup.
"""
import logging
import os
from enum import Enum
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from ..errors import ConfigError

ENV_PREFIX = "SVCTAIL_"

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


class HandoffMode(str, Enum):
    """
    How a live follower continues from where the historical scan stopped.
    """
    # Seek straight to the byte offset reached by the scan
    OFFSET = "offset"
    # Re-read from the start and discard the lines the scan consumed
    LINES = "lines"


class Settings(BaseModel):
    """
    Tunables for a log aggregation session.
    """
    config_file: str = "svctail.yml"
    log_dir: Optional[str] = None
    poll_interval: float = 0.1
    handoff: HandoffMode = HandoffMode.OFFSET
    # 0 means unbounded
    queue_size: int = 0
    log_level: str = "WARNING"

    @field_validator("poll_interval")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("queue_size")
    @classmethod
    def _non_negative_size(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value}")
        return value

    @classmethod
    def from_env(cls,
                 environ: Optional[Mapping[str, str]] = None,
                 dotenv_path: Optional[str] = None) -> "Settings":
        """
        Builds settings from ``SVCTAIL_*`` environment variables.

        :param environ: Variables to read; defaults to the process environment,
                        after loading a ``.env`` file into it.
        :param dotenv_path: Explicit ``.env`` file to load. Variables already
                            set in the environment take precedence over it.
        :return: The settings.
        :raises ConfigError: If a variable holds an invalid value.
        """
        if environ is None:
            load_dotenv(dotenv_path=dotenv_path or os.path.join(os.getcwd(), ".env"))
            environ = os.environ

        values = {}
        for field in cls.model_fields:
            key = ENV_PREFIX + field.upper()
            if environ.get(key):
                values[field] = environ[key]

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """
    Sends svctail's own diagnostics to stderr.

    Safe to call more than once; the handler is only installed the first time.

    :param level: Name of the minimum level to report.
    :return: The package logger.
    """
    logger = logging.getLogger("svctail")
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
