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
Container engine selection.

Two engine families are supported. They accept the same command line
except for how files written to the mounted project end up owned by
the invoking user:

- podman maps the user through a user namespace (--userns keep-id)
- docker runs as the host uid:gid and relies on the fixuid entrypoint
  baked into the images to fix the in-container home directory
"""
import os
import shutil
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..UTILS.errors import ConfigurationError
from ..UTILS.log import get_logger

logger = get_logger(__name__)

AUTODETECT = ""


class EngineFamily(str, Enum):
    """Supported container engine families."""
    DOCKER = "docker"
    PODMAN = "podman"


def current_user_ids() -> Optional[Tuple[int, int]]:
    """
    Returns the (uid, gid) of the current host user, or None where the
    platform has no numeric ids.
    """
    getuid = getattr(os, "getuid", None)
    getgid = getattr(os, "getgid", None)
    if getuid is None or getgid is None:
        return None
    return getuid(), getgid()


class PermissionStrategy:
    """
    Engine specific handling of mount permissions.

    arguments() returns the flags to insert before the environment
    flags and the arguments to prepend to the user command.
    """

    def arguments(self, host_os: str, debug: bool) -> Tuple[List[str], List[str]]:
        raise NotImplementedError


class PodmanPermissions(PermissionStrategy):
    """Keeps the host user id through a user namespace."""

    def arguments(self, host_os: str, debug: bool) -> Tuple[List[str], List[str]]:
        return ["--userns", "keep-id", "-e", "use_podman=1"], []


class DockerPermissions(PermissionStrategy):
    """
    Runs the container as the host user, through the fixuid entrypoint.
    Windows hosts have no numeric ids to pass, so nothing is emitted there.
    """

    def __init__(self, user_ids: Callable[[], Optional[Tuple[int, int]]] = current_user_ids):
        self.user_ids = user_ids

    def arguments(self, host_os: str, debug: bool) -> Tuple[List[str], List[str]]:
        if host_os == "windows":
            return [], []
        ids = self.user_ids()
        if ids is None:
            return [], []
        uid, gid = ids
        flags = ["-u", f"{uid}:{gid}", "--entrypoint", "fixuid"]
        # fixuid is chatty unless told otherwise
        prefix = [] if debug else ["-q"]
        return flags, prefix


class Engine:
    """
    A resolved container engine binary.

    The permission strategy is picked once, from the engine family.
    """

    def __init__(self, family: EngineFamily, binary: str,
                 permissions: Optional[PermissionStrategy] = None):
        self.family = family
        self.binary = binary
        if permissions is None:
            permissions = PodmanPermissions() if family == EngineFamily.PODMAN else DockerPermissions()
        self.permissions = permissions

    def __repr__(self) -> str:
        return f"Engine({self.family.value}, {self.binary!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Engine):
            return NotImplemented
        return (self.family, self.binary) == (other.family, other.binary)

    def __hash__(self) -> int:
        return hash((self.family, self.binary))

    @property
    def name(self) -> str:
        return self.family.value

    def is_podman(self) -> bool:
        return self.family == EngineFamily.PODMAN

    def is_docker(self) -> bool:
        return self.family == EngineFamily.DOCKER


def classify(binary: str) -> EngineFamily:
    """
    Classifies an engine binary name or path.

    Anything that does not look like podman is treated as docker.
    """
    base = os.path.basename(binary).lower()
    if EngineFamily.PODMAN.value in base:
        return EngineFamily.PODMAN
    if EngineFamily.DOCKER.value not in base:
        # TODO: decide whether unknown engines should be rejected instead of treated as docker
        logger.debug("Unknown container engine %r, assuming docker compatible", binary)
    return EngineFamily.DOCKER


def make_engine(name: str = AUTODETECT,
                which: Optional[Callable[[str], Optional[str]]] = None) -> Engine:
    """
    Resolves the container engine to use.

    Args:
        name: "docker", "podman", a binary name/path, or empty to autodetect.
        which: PATH lookup function, shutil.which by default.

    Returns:
        The resolved Engine.

    Raises:
        ConfigurationError: If no suitable binary can be found.
    """
    which = which or shutil.which
    if name == AUTODETECT:
        for family in (EngineFamily.DOCKER, EngineFamily.PODMAN):
            binary = which(family.value)
            if binary:
                logger.debug("Container engine autodetected: %s (%s)", family.value, binary)
                return Engine(family=family, binary=binary)
        raise ConfigurationError("container engine not found in PATH: install docker or podman")

    if name in (EngineFamily.DOCKER.value, EngineFamily.PODMAN.value):
        binary = which(name)
        if not binary:
            raise ConfigurationError(f"{name} binary not found in PATH")
        return Engine(family=EngineFamily(name), binary=binary)

    binary = which(name)
    if not binary:
        raise ConfigurationError(f"engine binary not found in PATH: {name}")
    return Engine(family=classify(name), binary=binary)
