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
Android target: builds and packages an APK.
"""
from ..MODELS.architecture import Architecture
from ..MODELS.context import BuildContext, resolve_keystore
from ..RUNNERS.container_image import ContainerImage
from ..UTILS.errors import ConfigurationError, ExecutionError, RelocationError
from ..UTILS.log import get_logger
from .base import PlatformCommand, PlatformFlags, fyne_package, fyne_release, move_packaged, prepare_icon, toolchain_image

logger = get_logger(__name__)

ANDROID_OS = "android"
ANDROID_IMAGE = toolchain_image("android")


class AndroidFlags(PlatformFlags):
    """Android specific flags."""
    keystore: str = ""
    keystore_pass: str = ""
    key_pass: str = ""


class Android(PlatformCommand):
    """
    Builds and packages an application for the android OS.

    By default a fat APK covering every supported instruction set is
    built; selecting architectures builds one APK per architecture.
    """
    name = ANDROID_OS
    description = "Build and package an application for the android OS"
    supported_arch = (Architecture.MULTIPLE, Architecture.AMD64, Architecture.I386,
                      Architecture.ARM, Architecture.ARM64)
    default_arch = Architecture.MULTIPLE
    flags_class = AndroidFlags

    def default_image(self, architecture: Architecture) -> str:
        return ANDROID_IMAGE

    def validate(self, flags: AndroidFlags, context: BuildContext):
        if not context.app_id:
            raise ConfigurationError(f"appID is mandatory for {ANDROID_OS}")

        context.keystore = resolve_keystore(context.volume, flags.keystore, context.no_project_upload)
        context.keystore_pass = flags.keystore_pass
        context.key_pass = flags.key_pass

    def run_each(self, image: ContainerImage) -> str:
        ctx = self.context
        logger.info("[i] Packaging app...")

        package_name = f"{ctx.name}.apk"

        prepare_icon(ctx, image)

        try:
            if ctx.release:
                extra = []
                if ctx.keystore:
                    extra += ["-keyStore", ctx.keystore]
                if ctx.keystore_pass:
                    extra += ["-keyStorePass", ctx.keystore_pass]
                if ctx.key_pass:
                    extra += ["-keyPass", ctx.key_pass]
                fyne_release(ctx, image, ctx.package_dir_container, extra)
            else:
                fyne_package(ctx, image, ctx.package_dir_container)
        except ExecutionError as e:
            raise ExecutionError(f"could not package the app: {e}") from e

        try:
            move_packaged(ctx, image, ctx.package_dir_container, "*.apk", package_name)
        except ExecutionError as e:
            raise RelocationError("could not retrieve the packaged apk") from e

        return package_name
