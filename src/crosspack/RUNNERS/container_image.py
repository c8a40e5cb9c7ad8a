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
A single (OS, architecture) build unit executed in its own containers.

Lifecycle:

    CREATED --prepare()--> PREPARED --run()--> RUN --finalize()--> FINALIZED
                                               ^  |
                                               +--+ (run() may be repeated)

close() is accepted from any state and moves the image to CLOSED.
"""
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from ..MODELS.architecture import Architecture
from ..MODELS.volume import Volume, join_path_host
from ..UTILS.errors import ExecutionError, LifecycleError, PreparationError, RelocationError
from ..UTILS.log import get_logger
from .flags import Mount, compose_env_flags, compose_mount_flags

if TYPE_CHECKING:
    from .container_runner import ContainerRunner

logger = get_logger(__name__)

FREEBSD_OS = "freebsd"

# always exported to the build container
CGO_ENABLED = "CGO_ENABLED=1"


class ImageState(str, Enum):
    """States of a container image lifecycle."""
    CREATED = "created"
    PREPARED = "prepared"
    RUN = "run"
    FINALIZED = "finalized"
    CLOSED = "closed"


@dataclass
class RunOptions:
    """
    Options for a single container run.

    Attributes:
        work_dir: Working directory inside the container. Defaults to the volume work dir.
    """
    work_dir: Optional[str] = None


class ContainerImage:
    """
    Build unit for one target OS and architecture.

    Owns the mounts and the environment passed to each container it
    starts. Both may only be changed before the first run.
    """

    def __init__(self,
                 runner: "ContainerRunner",
                 architecture: Architecture,
                 os_name: str,
                 image_id: str,
                 image_ref: str,
                 pull: bool = False,
                 shared_env: Optional[Dict[str, str]] = None,
                 tags: Optional[Iterable[str]] = None):
        """
        Args:
            runner: The runner that created this image.
            architecture: Target architecture.
            os_name: Target operating system.
            image_id: Unique ID of the target, used for directory names.
            image_ref: Reference of the container image holding the toolchain.
            pull: Pull a newer version of the image in prepare().
            shared_env: Variables shared by every image of the run, copied.
            tags: Build tags, copied.
        """
        self.runner = runner
        self.architecture = architecture
        self.os = os_name
        self.id = image_id
        self.image_ref = image_ref
        self.pull = pull
        self.shared_env: Dict[str, str] = dict(shared_env or {})
        self.tags: List[str] = list(tags or [])
        self.mounts: Dict[str, Mount] = {}
        self.env: Dict[str, str] = {}
        self.state = ImageState.CREATED

    def __repr__(self) -> str:
        return f"ContainerImage({self.id}, {self.image_ref}, {self.state.value})"

    def __enter__(self) -> "ContainerImage":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _require(self, *states: ImageState, action: str):
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise LifecycleError(
                f"cannot {action} image {self.id} in state {self.state.value!r} (expected: {allowed})")

    def set_mount(self, name: str, host: str, container: str):
        """Adds or replaces the mount with the given name."""
        self._require(ImageState.CREATED, ImageState.PREPARED, action="add a mount to")
        self.mounts[name] = Mount(name=name, host=host, container=container)

    def set_env(self, name: str, value: str):
        """Adds or replaces an image specific environment variable."""
        self._require(ImageState.CREATED, ImageState.PREPARED, action="set the environment of")
        self.env[name] = value

    def cmd(self, volume: Volume, options: Optional[RunOptions], command_args: List[str]) -> List[str]:
        """
        Builds the engine command line running command_args in a new container.

        The command does not depend on the lifecycle state and has no side effects.

        Args:
            volume: Directory layout of the build.
            options: Run options.
            command_args: Command and arguments to execute in the container.

        Returns:
            The full argument vector, engine binary first.
        """
        options = options or RunOptions()
        work_dir = options.work_dir or volume.work_dir_container

        args = [self.runner.engine.binary, "run", "--rm", "-t", "-w", work_dir]
        args += compose_mount_flags(self.mounts.values())

        permission_flags, command_prefix = self.runner.engine.permissions.arguments(
            self.runner.host_os, self.runner.debug)
        args += permission_flags

        args += ["-e", CGO_ENABLED, "-e", f"GOCACHE={volume.go_cache_dir_container}"]

        quote_needed = self.env.get("GOOS") != FREEBSD_OS
        args += compose_env_flags(self.shared_env, quote_needed)
        args += compose_env_flags(self.env, quote_needed)

        args.append(self.image_ref)
        args += command_prefix + list(command_args)
        return args

    def run(self, volume: Volume, options: Optional[RunOptions], command_args: List[str]):
        """
        Runs a command in a new container and waits for it to exit.

        Output goes straight to the tool's stdout and stderr.

        Raises:
            ExecutionError: If the engine cannot be started or the command fails.
        """
        self._require(ImageState.PREPARED, ImageState.RUN, action="run")
        args = self.cmd(volume, options, command_args)
        logger.debug(shlex.join(args))
        try:
            result = subprocess.run(args)
        except OSError as e:
            raise ExecutionError(f"could not start {args[0]}: {e}") from e
        if result.returncode != 0:
            error = subprocess.CalledProcessError(result.returncode, args)
            raise ExecutionError(f"container run failed for {self.id}: {error}") from error
        self.state = ImageState.RUN

    def prepare(self):
        """
        Pulls a newer version of the container image, when requested.

        Raises:
            PreparationError: If the pull fails.
        """
        self._require(ImageState.CREATED, action="prepare")
        if not self.pull:
            self.state = ImageState.PREPARED
            return

        logger.info("[i] Checking for a newer version of the container image: %s", self.image_ref)
        args = [self.runner.engine.binary, "pull", self.image_ref]
        logger.debug(shlex.join(args))
        try:
            result = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                    text=True, errors="replace")
        except OSError as e:
            raise PreparationError(f"could not pull the container image: {e}") from e
        if result.stdout:
            logger.debug(result.stdout)
        if result.returncode != 0:
            raise PreparationError(
                f"could not pull the container image: {args[0]} exited with status {result.returncode}")

        logger.info("[✓] Image is up to date")
        self.state = ImageState.PREPARED

    def finalize(self, package_name: str) -> str:
        """
        Moves the packaged artifact from the shared temp directory into
        the dist directory of this image.

        Args:
            package_name: File name of the artifact in tmp/<ID>.

        Returns:
            The host path of the artifact in dist/<ID>.

        Raises:
            RelocationError: If the artifact is missing or cannot be moved.
        """
        self._require(ImageState.RUN, action="finalize")
        volume = self.runner.volume
        src_path = join_path_host(volume.tmp_dir_host, self.id, package_name)
        dist_file = join_path_host(volume.dist_dir_host, self.id, package_name)

        if not os.path.isfile(src_path):
            raise RelocationError(f"could not retrieve the packaged artifact: {src_path} not found")

        try:
            os.makedirs(os.path.dirname(dist_file), exist_ok=True)
        except OSError as e:
            raise RelocationError(f"could not create the dist package dir: {e}") from e

        try:
            shutil.move(src_path, dist_file)
        except OSError as e:
            raise RelocationError(f"could not move the packaged artifact: {e}") from e

        logger.info("[✓] Package: %r", dist_file)
        self.state = ImageState.FINALIZED
        return dist_file

    def close(self):
        """Releases the image. Containers are removed on exit, so nothing is held."""
        self.state = ImageState.CLOSED
