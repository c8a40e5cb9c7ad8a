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
Factory for the container images of a build.
"""
import platform
from typing import List, Optional

from ..MODELS.architecture import Architecture
from ..MODELS.context import BuildContext
from ..UTILS.errors import ConfigurationError
from .container_image import ContainerImage

CACHE_MOUNT = "cache"


def image_id(architecture: Optional[Architecture], os_name: str) -> str:
    """
    Returns the ID of a target: "<os>-<arch>", or "<os>" for multi-arch builds.
    """
    if architecture is None or architecture == Architecture.MULTIPLE:
        return os_name
    return f"{os_name}-{architecture.value}"


def host_os() -> str:
    """Lower-cased name of the host operating system (linux, darwin, windows)."""
    return platform.system().lower()


class ContainerRunner:
    """
    Creates one ContainerImage per requested architecture and injects
    the configuration shared by all of them.

    The runner never starts a container itself.
    """

    def __init__(self, context: BuildContext, host: Optional[str] = None):
        """
        Args:
            context: The validated build context.
            host: Host operating system name, detected when omitted.
        """
        self.context = context
        self.engine = context.engine
        self.volume = context.volume
        self.env = dict(context.env)
        self.tags = list(context.tags)
        self.debug = context.debug
        self.pull = context.pull
        self.cache_enabled = context.cache_enabled
        self.host_os = host or host_os()
        self.images: List[ContainerImage] = []

    def new_image_container(self, architecture: Architecture, os_name: str, image_ref: str) -> ContainerImage:
        """
        Creates the image for one target.

        Args:
            architecture: Target architecture, MULTIPLE for a fat build.
            os_name: Target operating system.
            image_ref: Container image holding the toolchain.

        Returns:
            The new ContainerImage, in CREATED state.

        Raises:
            ConfigurationError: If an image with the same ID already exists.
        """
        target_id = image_id(architecture, os_name)
        if any(existing.id == target_id for existing in self.images):
            raise ConfigurationError(f"target {target_id} requested more than once")

        image = ContainerImage(
            runner=self,
            architecture=architecture,
            os_name=os_name,
            image_id=target_id,
            image_ref=image_ref,
            pull=self.pull,
            shared_env=self.env,
            tags=self.tags,
        )

        image.set_env("GOOS", os_name)
        if architecture is not None and architecture != Architecture.MULTIPLE:
            image.set_env("GOARCH", architecture.value)
            if architecture == Architecture.ARM:
                image.set_env("GOARM", "7")

        if self.cache_enabled:
            image.set_mount(CACHE_MOUNT, self.volume.cache_dir_host, self.volume.cache_dir_container)

        self.images.append(image)
        return image

    def close(self):
        """Closes every image created by this runner."""
        for image in self.images:
            image.close()
