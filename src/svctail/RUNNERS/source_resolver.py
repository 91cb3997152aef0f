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
Resolution of a selection of services and groups into the run logs to aggregate.
"""
import logging
from typing import List, Sequence

from ..MODELS.log_source import LogSource
from ..MODELS.orchestration_config import ServiceOrGroup
from ..MODELS.service_definition import ServiceDefinition, ServiceGroupDefinition

logger = logging.getLogger(__name__)


class SourceResolver:
    """
    Flattens services and nested groups into an ordered list of log sources.
    """
    def resolve(self, selection: Sequence[ServiceOrGroup]) -> List[LogSource]:
        """
        Determines which run logs to read, in the order they are scanned.

        Within a group, nested groups are resolved first (depth first, in the
        order listed), followed by the group's own services. Services without
        a launch command never write a run log and are left out.

        :param selection: Services and groups, in the order requested.
        :return: One source per launchable service.
        """
        sources: List[LogSource] = []

        def visit(item: ServiceOrGroup):
            """
            Recursive walk over a service or group.
            """
            if isinstance(item, ServiceDefinition):
                if not item.has_launch_command():
                    logger.debug("Skipping %s: no launch command", item.name)
                    return
                sources.append(LogSource(service_name=item.name, path=item.get_run_log()))
            elif isinstance(item, ServiceGroupDefinition):
                for group in item.groups:
                    visit(group)
                for service in item.services:
                    visit(service)
            else:
                raise TypeError(f"Expected a service or group, got {type(item).__name__}")

        for item in selection:
            visit(item)

        return sources


def resolve_sources(selection: Sequence[ServiceOrGroup]) -> List[LogSource]:
    """
    Shorthand for ``SourceResolver().resolve(selection)``.
    """
    return SourceResolver().resolve(selection)


def count_services(selection: Sequence[ServiceOrGroup]) -> int:
    """
    Counts every service reachable from a selection, launchable or not.
    """
    total = 0
    for item in selection:
        if isinstance(item, ServiceGroupDefinition):
            total += count_services(item.groups) + len(item.services)
        else:
            total += 1
    return total
