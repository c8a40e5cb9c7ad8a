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
Behavior shared by the per-platform commands.

A platform command is configured once with parse(), then run() builds
each of its images through the BuildOrchestrator, calling run_each()
to package an image.
"""
import os
import shlex
from typing import Dict, List, Optional, Sequence

from jinja2 import Template

from ..MANAGERS.build_orchestrator import BuildOrchestrator, BuildReport
from ..MODELS.architecture import Architecture, parse_target_arch
from ..MODELS.context import DEFAULT_ICON, BuildContext, CommonFlags, make_default_context
from ..MODELS.volume import join_path_container, join_path_host
from ..RUNNERS.container_image import ContainerImage, RunOptions
from ..RUNNERS.container_runner import ContainerRunner
from ..RUNNERS.engine import Engine
from ..UTILS.errors import ConfigurationError, ExecutionError
from ..UTILS.log import get_logger

logger = get_logger(__name__)

FYNE_BIN = "fyne"
PROJECT_MOUNT = "project"
IMAGE_REPOSITORY = "docker.io/crosspack/toolchain"
IMAGE_VERSION = "1.2"

USAGE_TEMPLATE = """
Usage: crosspack {{ name }} [options] [package]

{{ description }}

Supported arch: {{ supported | join(', ') }} (default: {{ default_arch }})
Default image: {{ image }}
"""


def toolchain_image(tag: str) -> str:
    return f"{IMAGE_REPOSITORY}:{IMAGE_VERSION}-{tag}"


class PlatformFlags(CommonFlags):
    """Common flags plus the requested architectures."""
    target_arch: str = ""


class PlatformCommand:
    """
    Base class of the platform commands.

    Subclasses set the class attributes and implement run_each().
    """
    name: str = ""
    description: str = ""
    supported_arch: Sequence[Architecture] = ()
    default_arch: Architecture = Architecture.AMD64
    flags_class = PlatformFlags

    def __init__(self):
        self.context: Optional[BuildContext] = None
        self.runner: Optional[ContainerRunner] = None
        self.images: List[ContainerImage] = []

    def default_image(self, architecture: Architecture) -> str:
        """Container image of the toolchain for an architecture."""
        raise NotImplementedError

    def image_env(self, architecture: Architecture) -> Dict[str, str]:
        """Extra environment variables for an architecture."""
        return {}

    def validate(self, flags: PlatformFlags, context: BuildContext):
        """Platform specific checks, run before any image is created."""

    def parse(self,
              flags: PlatformFlags,
              args: List[str],
              file_env: Optional[Dict[str, str]] = None,
              engine: Optional[Engine] = None,
              host: Optional[str] = None):
        """
        Validates the flags and creates one image per requested architecture.

        Args:
            flags: Parsed flags of the command.
            args: Positional arguments; the first one is the package.
            file_env: Variables loaded from an env file.
            engine: Pre-resolved engine, resolved from the flags otherwise.
            host: Host operating system name, detected when omitted.

        Raises:
            ConfigurationError: If anything is invalid. No image is created then.
        """
        targets = parse_target_arch(flags.target_arch or self.default_arch.value, self.supported_arch)
        context = make_default_context(flags, args, file_env=file_env, engine=engine)
        self.validate(flags, context)

        self.context = context
        self.runner = ContainerRunner(context, host=host)
        self.images = []
        for arch in targets:
            image = self.runner.new_image_container(arch, self.name, context.image_for(self.default_image(arch)))
            image.set_mount(PROJECT_MOUNT, context.volume.work_dir_host, context.volume.work_dir_container)
            for key, value in self.image_env(arch).items():
                image.set_env(key, value)
            self.images.append(image)

    def run(self, fail_fast: bool = False) -> BuildReport:
        """Builds every image."""
        if self.context is None:
            raise ConfigurationError(f"{self.name}: parse() must be called before run()")
        return BuildOrchestrator(self.images, self._run_image).run(fail_fast)

    def _run_image(self, image: ContainerImage) -> str:
        clean_target_dirs(self.context, image)
        return self.run_each(image)

    def run_each(self, image: ContainerImage) -> str:
        """
        Packages one image.

        :return: File name of the package in tmp/<ID>.
        """
        raise NotImplementedError

    def usage(self) -> str:
        """Help text of the command."""
        template = Template(USAGE_TEMPLATE)
        return template.render(
            name=self.name,
            description=self.description,
            supported=[a.value for a in self.supported_arch],
            default_arch=self.default_arch.value,
            image=self.default_image(self.default_arch),
        ).strip()


def clean_target_dirs(ctx: BuildContext, image: ContainerImage):
    """
    Empties the bin, dist and tmp directories of an image.

    Runs inside the container so the directories are owned by the build user.
    """
    dirs = {
        "bin": join_path_container(ctx.volume.bin_dir_container, image.id),
        "dist": join_path_container(ctx.volume.dist_dir_container, image.id),
        "temp": join_path_container(ctx.volume.tmp_dir_container, image.id),
    }
    logger.info("[i] Cleaning target directories...")
    for name, path in dirs.items():
        try:
            image.run(ctx.volume, RunOptions(), ["rm", "-rf", path])
            image.run(ctx.volume, RunOptions(), ["mkdir", "-p", path])
        except ExecutionError as e:
            raise ExecutionError(f"could not clean the {name} dir {path}: {e}") from e
        logger.info("[✓] %r dir cleaned: %s", name, path)


def prepare_icon(ctx: BuildContext, image: ContainerImage):
    """
    Copies the application icon into tmp/<ID> where the packager expects it.

    :raises ConfigurationError: If the icon does not exist in the project.
    """
    if not os.path.isfile(join_path_host(ctx.volume.work_dir_host, ctx.icon)):
        raise ConfigurationError(f"icon not found at {ctx.icon!r}")
    try:
        image.run(ctx.volume, RunOptions(), [
            "cp",
            join_path_container(ctx.volume.work_dir_container, ctx.icon),
            join_path_container(ctx.volume.tmp_dir_container, image.id, DEFAULT_ICON),
        ])
    except ExecutionError as e:
        raise ExecutionError(f"could not copy the icon to temp folder: {e}") from e


def go_build(ctx: BuildContext, image: ContainerImage) -> str:
    """
    Compiles the package into bin/<ID>/<name>.

    :return: The path of the executable inside the container.
    """
    output = join_path_container(ctx.volume.bin_dir_container, image.id, ctx.name)
    args = ["go", "build", "-trimpath", "-o", output]
    if image.tags:
        args += ["-tags", ",".join(image.tags)]
    args.append(".")
    logger.info("[i] Building binary...")
    try:
        image.run(ctx.volume, RunOptions(work_dir=ctx.package_dir_container), args)
    except ExecutionError as e:
        raise ExecutionError(f"could not build the binary: {e}") from e
    logger.info("[✓] Binary: %s", output)
    return output


def packager_target(image: ContainerImage) -> str:
    """Value of the packager -os flag for an image."""
    if image.os == "android" and not image.architecture.is_multiple:
        return f"{image.os}/{image.architecture.value}"
    return image.os


def fyne_command(ctx: BuildContext, image: ContainerImage, action: str, extra: Sequence[str] = ()) -> List[str]:
    """
    Builds a packager command line.

    :param action: "package" or "release".
    :param extra: Platform specific arguments.
    """
    args = [
        FYNE_BIN, action,
        "-os", packager_target(image),
        "-name", ctx.name,
        "-icon", join_path_container(ctx.volume.tmp_dir_container, image.id, DEFAULT_ICON),
        "-appBuild", str(ctx.app_build),
        "-appVersion", ctx.app_version,
    ]
    if ctx.app_id:
        args += ["-appID", ctx.app_id]
    if image.tags:
        args += ["-tags", ",".join(image.tags)]
    return args + list(extra)


def fyne_package(ctx: BuildContext, image: ContainerImage, work_dir: str, extra: Sequence[str] = ()):
    """Runs the packager in package mode."""
    if ctx.debug:
        image.run(ctx.volume, RunOptions(), [FYNE_BIN, "version"])
    image.run(ctx.volume, RunOptions(work_dir=work_dir), fyne_command(ctx, image, "package", extra))


def fyne_release(ctx: BuildContext, image: ContainerImage, work_dir: str, extra: Sequence[str] = ()):
    """Runs the packager in release mode."""
    if ctx.debug:
        image.run(ctx.volume, RunOptions(), [FYNE_BIN, "version"])
    image.run(ctx.volume, RunOptions(work_dir=work_dir), fyne_command(ctx, image, "release", extra))


def move_packaged(ctx: BuildContext, image: ContainerImage, source_dir: str, pattern: str, package_name: str):
    """
    Moves the package produced by the packager to tmp/<ID>/<package_name>.

    The packager sanitizes the file name in ways that cannot be predicted
    here, so the shell globs for it.
    """
    target = join_path_container(ctx.volume.tmp_dir_container, image.id, package_name)
    command = f"mv {shlex.quote(source_dir)}/{pattern} {shlex.quote(target)}"
    image.run(ctx.volume, RunOptions(), ["sh", "-c", command])
