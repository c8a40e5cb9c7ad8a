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
Dispatch table of the supported target platforms, keyed by target OS.
"""
from typing import Dict, Type

from .android import Android
from .base import PlatformCommand
from .unix import FreeBSD, Linux
from .windows import Windows

PLATFORMS: Dict[str, Type[PlatformCommand]] = {
    command.name: command
    for command in (Android, FreeBSD, Linux, Windows)
}


def get_platform(os_name: str) -> PlatformCommand:
    """
    Returns a new command for a target OS.

    :raises KeyError: If the OS is not supported.
    """
    return PLATFORMS[os_name]()
