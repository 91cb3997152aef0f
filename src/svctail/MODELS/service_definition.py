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
Models for defining services and groups of services.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class ServiceCommands(BaseModel):
    """
    Shell commands used to manage a service.
    """
    build: str = ""
    launch: str = ""
    stop: str = ""


class ServiceDefinition(BaseModel):
    """
    The definition of a single service and where its run log lives.
    """
    name: str
    path: Optional[str] = None
    description: str = ""
    commands: ServiceCommands = Field(default_factory=ServiceCommands)
    log_file: str

    def has_launch_command(self) -> bool:
        """
        Whether the service can be started at all; services that cannot never
        write a run log.
        """
        return bool(self.commands.launch.strip())

    def get_run_log(self) -> str:
        """
        :return: Path of the file the service's output is persisted to.
        """
        return self.log_file


class ServiceGroupDefinition(BaseModel):
    """
    A named collection of services and other groups.

    Children are kept in two lists, each preserving the order they were
    listed in the configuration. ``children`` keeps the names in the order
    they were listed across both lists.
    """
    name: str
    description: str = ""
    groups: List["ServiceGroupDefinition"] = []
    services: List[ServiceDefinition] = []
    children: List[str] = []


ServiceGroupDefinition.model_rebuild()
