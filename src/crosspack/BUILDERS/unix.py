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
Linux and FreeBSD targets: compile the binary, then package it as a
tarball with the desktop metadata.
"""
from typing import Dict

from ..MODELS.architecture import Architecture
from ..MODELS.volume import join_path_container
from ..RUNNERS.container_image import ContainerImage
from ..UTILS.errors import ExecutionError
from ..UTILS.log import get_logger
from .base import PlatformCommand, fyne_package, go_build, prepare_icon, toolchain_image

logger = get_logger(__name__)

LINUX_OS = "linux"
FREEBSD_OS = "freebsd"


class UnixCommand(PlatformCommand):
    """
    Shared steps of the targets where the binary is compiled first and
    the packager only wraps it.
    """
    compilers: Dict[Architecture, str] = {}

    def image_env(self, architecture: Architecture) -> Dict[str, str]:
        compiler = self.compilers.get(architecture)
        return {"CC": compiler} if compiler else {}

    def run_each(self, image: ContainerImage) -> str:
        ctx = self.context
        package_name = f"{ctx.name}.tar.xz"

        prepare_icon(ctx, image)
        executable = go_build(ctx, image)

        logger.info("[i] Packaging app...")
        work_dir = join_path_container(ctx.volume.tmp_dir_container, image.id)
        try:
            fyne_package(ctx, image, work_dir, ["-executable", executable])
        except ExecutionError as e:
            raise ExecutionError(f"could not package the app: {e}") from e

        return package_name


class Linux(UnixCommand):
    """Builds and packages an application for the linux OS."""
    name = LINUX_OS
    description = "Build and package an application for the linux OS"
    supported_arch = (Architecture.AMD64, Architecture.I386, Architecture.ARM, Architecture.ARM64)
    compilers = {
        Architecture.I386: "i686-linux-gnu-gcc",
        Architecture.ARM: "arm-linux-gnueabihf-gcc",
        Architecture.ARM64: "aarch64-linux-gnu-gcc",
    }

    def default_image(self, architecture: Architecture) -> str:
        if architecture == Architecture.AMD64:
            return toolchain_image("base")
        return toolchain_image(f"{LINUX_OS}-{architecture.value}")


class FreeBSD(UnixCommand):
    """Builds and packages an application for the freebsd OS."""
    name = FREEBSD_OS
    description = "Build and package an application for the freebsd OS"
    supported_arch = (Architecture.AMD64, Architecture.ARM64)
    compilers = {
        Architecture.AMD64: "x86_64-unknown-freebsd12-clang",
        Architecture.ARM64: "aarch64-unknown-freebsd12-clang",
    }

    def default_image(self, architecture: Architecture) -> str:
        return toolchain_image(f"{FREEBSD_OS}-{architecture.value}")
