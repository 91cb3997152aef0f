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
Models for the overall service configuration.
"""
from typing import Dict, List, Union

from pydantic import BaseModel

from ..errors import ResolutionError
from .service_definition import ServiceDefinition, ServiceGroupDefinition

ServiceOrGroup = Union[ServiceDefinition, ServiceGroupDefinition]


class OrchestrationConfig(BaseModel):
    """
    Every service and group known to svctail, keyed by name.
    Equivalent to a parsed svctail.yml file.
    """
    log_dir: str
    services: Dict[str, ServiceDefinition] = {}
    groups: Dict[str, ServiceGroupDefinition] = {}

    def get_services_or_groups(self, names: List[str]) -> List[ServiceOrGroup]:
        """
        Looks up each name, services first, then groups.

        :param names: Names given by the user, in the order given.
        :return: Matching definitions, in the same order.
        :raises ResolutionError: If any name is unknown.
        """
        found: List[ServiceOrGroup] = []
        for name in names:
            if name in self.services:
                found.append(self.services[name])
            elif name in self.groups:
                found.append(self.groups[name])
            else:
                raise ResolutionError(name)
        return found
