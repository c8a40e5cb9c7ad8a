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
Parsers for the crosspack.yml project file and for env files.
"""
import os
from typing import Dict, Optional

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from ..MODELS.project_config import ProjectConfig
from ..UTILS.errors import ConfigurationError

PROJECT_FILE = "crosspack.yml"


class ConfigParser:
    """
    Parser for crosspack.yml files.
    """

    def load(self, work_dir: str) -> ProjectConfig:
        """
        Loads the project file of a work dir, if there is one.

        :param work_dir: The project root.
        :return: The parsed configuration, empty when the file does not exist.
        """
        path = os.path.join(work_dir, PROJECT_FILE)
        if not os.path.isfile(path):
            return ProjectConfig()
        return self.parse(path)

    def parse(self, config_path: str) -> ProjectConfig:
        """
        Parses a project file from a path.

        :param config_path: Path to the project file.
        :return: Parsed configuration.
        """
        with open(config_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content, source=config_path)

    def parse_from_string(self, content: str, source: str = PROJECT_FILE) -> ProjectConfig:
        """
        Parses a project file from a string.

        :param content: YAML content of the project file.
        :param source: Name used in error messages.
        :return: Parsed configuration.
        :raises ConfigurationError: If the content is not valid YAML or does not match the schema.
        """
        if not content.strip():
            return ProjectConfig()
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"could not parse {source}: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"could not parse {source}: expected a mapping")
        data = {str(k): v for k, v in data.items()}

        # YAML happily turns unquoted values into numbers and booleans
        if isinstance(data.get('env'), dict):
            data['env'] = {str(k): self._to_str(v) for k, v in data['env'].items()}
        if isinstance(data.get('app_version'), (int, float)):
            data['app_version'] = str(data['app_version'])

        try:
            return ProjectConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid {source}: {e}") from e

    @staticmethod
    def _to_str(value) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


def load_env_file(env_path: Optional[str]) -> Dict[str, str]:
    """
    Loads variables from a dotenv file.

    :param env_path: Path to the file, None for no file.
    :return: Variables in file order. Variables without a value are dropped.
    :raises ConfigurationError: If the file does not exist.
    """
    if not env_path:
        return {}
    if not os.path.isfile(env_path):
        raise ConfigurationError(f"env file not found: {env_path}")
    values = dotenv_values(env_path)
    return {k: v for k, v in values.items() if v is not None}
