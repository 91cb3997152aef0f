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
Parser for svctail YAML configuration files.

Example::

    log_dir: .svctail/logs
    services:
      db:
        commands:
          launch: postgres -D data
      api:
        path: ./api
        commands:
          launch: python -m api
    groups:
      backend:
        children: [db, api]
"""
import logging
import os
from typing import Any, Dict, List, Optional, Set

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from ..MODELS.orchestration_config import OrchestrationConfig
from ..MODELS.service_definition import (
    ServiceCommands,
    ServiceDefinition,
    ServiceGroupDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = os.path.join(".svctail", "logs")


class ConfigParser:
    """
    Parser for svctail.yml files.
    """
    def __init__(self, log_dir: Optional[str] = None):
        """
        Initializes the parser.

        :param log_dir: Overrides the run log directory named in the file.
        """
        self.log_dir = log_dir

    def parse(self, config_path: str) -> OrchestrationConfig:
        """
        Parses a configuration file from a path.

        Relative paths in the file are taken relative to the file's directory.

        :param config_path: Path to the configuration file.
        :return: Parsed configuration.
        """
        try:
            with open(config_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Could not read {config_path}: {e.strerror or e}") from e
        base_dir = os.path.dirname(os.path.abspath(config_path))
        return self.parse_from_string(content, base_dir=base_dir)

    def parse_from_string(self, content: str, base_dir: str = ".") -> OrchestrationConfig:
        """
        Parses a configuration from a string.

        :param content: YAML content of the configuration.
        :param base_dir: Directory relative paths are resolved against.
        :return: Parsed configuration.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        log_dir = str(self.log_dir or data.get('log_dir') or DEFAULT_LOG_DIR)
        log_dir = os.path.join(base_dir, log_dir)

        services = {}
        for name, spec in self._section(data, 'services').items():
            services[str(name)] = self._parse_service(str(name), spec or {}, log_dir, base_dir)

        raw_groups = {str(name): spec for name, spec in self._section(data, 'groups').items()}
        for name in raw_groups:
            if name in services:
                raise ConfigError(f"'{name}' is defined as both a service and a group")

        groups: Dict[str, ServiceGroupDefinition] = {}
        for name in raw_groups:
            self._build_group(name, raw_groups, services, groups, set())

        logger.debug("Loaded %d services and %d groups", len(services), len(groups))
        return OrchestrationConfig(log_dir=log_dir, services=services, groups=groups)

    def _section(self, data: Dict[str, Any], key: str) -> Dict[str, Any]:
        section = data.get(key) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'{key}' must be a mapping of names to definitions")
        return section

    def _parse_service(self,
                       name: str,
                       spec: Dict[str, Any],
                       log_dir: str,
                       base_dir: str) -> ServiceDefinition:
        """
        Parses a single service definition.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :param log_dir: Directory run logs default to.
        :param base_dir: Directory relative paths are resolved against.
        :return: A ServiceDefinition instance.
        """
        if not isinstance(spec, dict):
            raise ConfigError(f"Service '{name}' must be a mapping")

        commands = spec.get('commands') or {}
        # A bare string is shorthand for the launch command
        if isinstance(commands, str):
            commands = {'launch': commands}

        log_file = spec.get('log_file')
        path = spec.get('path')
        try:
            if log_file:
                log_file = os.path.join(base_dir, log_file)
            else:
                log_file = os.path.join(log_dir, f"{name}.log")
            return ServiceDefinition(
                name=name,
                path=os.path.join(base_dir, path) if path else None,
                description=spec.get('description', ''),
                commands=ServiceCommands(**commands),
                log_file=log_file,
            )
        except (TypeError, ValidationError) as e:
            raise ConfigError(f"Invalid service '{name}': {e}") from e

    def _build_group(self,
                     name: str,
                     raw_groups: Dict[str, Any],
                     services: Dict[str, ServiceDefinition],
                     groups: Dict[str, ServiceGroupDefinition],
                     building: Set[str]) -> ServiceGroupDefinition:
        """
        Builds a group and, recursively, every group it contains.

        :param name: The group to build.
        :param raw_groups: Group specifications from the file.
        :param services: Already parsed services.
        :param groups: Groups built so far, updated in place.
        :param building: Groups currently being built, for cycle detection.
        :return: The built group.
        :raises ConfigError: On unknown children or circular membership.
        """
        if name in groups:
            return groups[name]
        if name in building:
            raise ConfigError(f"Circular group membership detected involving {name}")

        spec = raw_groups[name] or {}
        if isinstance(spec, list):
            spec = {'children': spec}
        if not isinstance(spec, dict):
            raise ConfigError(f"Group '{name}' must be a mapping")

        nested: List[ServiceGroupDefinition] = []
        direct: List[ServiceDefinition] = []
        children = spec.get('children') or []
        if isinstance(children, str):
            children = [children]
        if not isinstance(children, list):
            raise ConfigError(f"Children of group '{name}' must be a list")

        building.add(name)
        for child in children:
            child = str(child)
            if child in services:
                direct.append(services[child])
            elif child in raw_groups:
                nested.append(self._build_group(child, raw_groups, services, groups, building))
            else:
                raise ConfigError(f"Group '{name}' refers to unknown service or group '{child}'")
        building.remove(name)

        try:
            groups[name] = ServiceGroupDefinition(
                name=name,
                description=spec.get('description', ''),
                groups=nested,
                services=direct,
                children=[str(child) for child in children],
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid group '{name}': {e}") from e
        return groups[name]
