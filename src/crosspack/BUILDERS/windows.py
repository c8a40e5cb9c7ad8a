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
Windows target: packages a self-contained executable.
"""
from typing import Dict

from ..MODELS.architecture import Architecture
from ..MODELS.context import BuildContext
from ..RUNNERS.container_image import ContainerImage
from ..UTILS.errors import ConfigurationError, ExecutionError, RelocationError
from ..UTILS.log import get_logger
from .base import PlatformCommand, PlatformFlags, fyne_package, fyne_release, move_packaged, prepare_icon, toolchain_image

logger = get_logger(__name__)

WINDOWS_OS = "windows"
WINDOWS_IMAGE = toolchain_image(WINDOWS_OS)


class Windows(PlatformCommand):
    """Builds and packages an application for the windows OS."""
    name = WINDOWS_OS
    description = "Build and package an application for the windows OS"
    supported_arch = (Architecture.AMD64, Architecture.I386)
    compilers = {
        Architecture.AMD64: "x86_64-w64-mingw32-gcc",
        Architecture.I386: "i686-w64-mingw32-gcc",
    }

    def default_image(self, architecture: Architecture) -> str:
        return WINDOWS_IMAGE

    def image_env(self, architecture: Architecture) -> Dict[str, str]:
        return {"CC": self.compilers[architecture]}

    def validate(self, flags: PlatformFlags, context: BuildContext):
        if context.release and not context.app_id:
            raise ConfigurationError(f"appID is mandatory for {WINDOWS_OS} release builds")

    def run_each(self, image: ContainerImage) -> str:
        ctx = self.context
        package_name = f"{ctx.name}.exe"

        prepare_icon(ctx, image)

        logger.info("[i] Packaging app...")
        try:
            if ctx.release:
                fyne_release(ctx, image, ctx.package_dir_container)
            else:
                fyne_package(ctx, image, ctx.package_dir_container)
        except ExecutionError as e:
            raise ExecutionError(f"could not package the app: {e}") from e

        try:
            move_packaged(ctx, image, ctx.package_dir_container, "*.exe", package_name)
        except ExecutionError as e:
            raise RelocationError("could not retrieve the packaged executable") from e

        return package_name
