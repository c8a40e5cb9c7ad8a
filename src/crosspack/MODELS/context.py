"""
Build context shared by the platform commands and the container runner.
"""
import os
import posixpath
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..RUNNERS.engine import Engine, make_engine
from ..UTILS.errors import ConfigurationError
from .volume import Volume, join_path_container, join_path_host

DEFAULT_ICON = "Icon.png"
DEFAULT_APP_VERSION = "1.0.0"


class CommonFlags(BaseModel):
    """
    Options common to every target platform.
    """
    app_build: int = Field(default=1, ge=1)
    app_id: str = ""
    app_version: str = DEFAULT_APP_VERSION
    cache_dir: Optional[str] = None
    debug: bool = False
    image: str = ""
    engine: str = ""
    env: List[str] = []
    env_file: Optional[str] = None
    icon: str = DEFAULT_ICON
    ldflags: str = ""
    name: str = ""
    no_cache: bool = False
    no_project_upload: bool = False
    pull: bool = False
    release: bool = False
    silent: bool = False
    tags: List[str] = []
    work_dir: Optional[str] = None


class BuildContext(BaseModel):
    """
    Everything a platform command needs to create and run its images.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    app_build: int = 1
    app_id: str = ""
    app_version: str = DEFAULT_APP_VERSION
    cache_enabled: bool = True
    debug: bool = False
    image: str = ""
    engine: Engine
    env: Dict[str, str] = {}
    icon: str = DEFAULT_ICON
    name: str
    no_project_upload: bool = False
    package: str = "."
    pull: bool = False
    release: bool = False
    tags: List[str] = []
    volume: Volume

    # android signing, resolved to container paths
    keystore: str = ""
    keystore_pass: str = ""
    key_pass: str = ""

    @property
    def package_dir_container(self) -> str:
        return join_path_container(self.volume.work_dir_container, self.package)

    @property
    def package_dir_host(self) -> str:
        return os.path.normpath(join_path_host(self.volume.work_dir_host, self.package))

    def image_for(self, default: str) -> str:
        """Returns the image override, if any, else the platform default."""
        return self.image or default


def resolve_package(args: List[str], volume: Volume) -> str:
    """
    Resolves the package argument to a path relative to the project root.

    :param args: Positional arguments of the command.
    :param volume: The project volume.
    :return: The package as a relative POSIX path, "." for the root.
    :raises ConfigurationError: If the package is malformed or outside the project root.
    """
    pkg = args[0] if args else "."
    if pkg == ".":
        return pkg

    if not os.path.isabs(pkg):
        if not (pkg.startswith("./") or pkg.startswith(".\\")):
            raise ConfigurationError(
                "package options when relative must start with ./. Example: crosspack linux ./cmd/app")
        pkg = join_path_host(volume.work_dir_host, pkg)

    rel = os.path.relpath(os.path.normpath(pkg), volume.work_dir_host)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        raise ConfigurationError(
            f"package directory must be under the project root: {volume.work_dir_host}")
    return posixpath.normpath(rel.replace(os.sep, "/"))


def resolve_keystore(volume: Volume, keystore: str, no_project_upload: bool) -> str:
    """
    Validates a keystore location and translates it to the container path space.

    The keystore must be relative to the project root. When the project is
    uploaded it must also exist there.

    :param volume: The project volume.
    :param keystore: Keystore location as given by the user.
    :param no_project_upload: Skip the existence check.
    :return: The keystore path inside the container, "" when no keystore was given.
    :raises ConfigurationError: If the location is absolute or missing.
    """
    if not keystore:
        return ""
    if os.path.isabs(keystore) or keystore.startswith("/"):
        raise ConfigurationError(
            f"keystore location must be relative to the project root: {volume.work_dir_host}")

    host_path = os.path.normpath(join_path_host(volume.work_dir_host, keystore))
    rel = os.path.relpath(host_path, volume.work_dir_host)
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        raise ConfigurationError(
            f"keystore location must be under the project root: {volume.work_dir_host}")

    if not no_project_upload and not os.path.exists(host_path):
        raise ConfigurationError(
            f"keystore location must be under the project root: {volume.work_dir_host}")

    return join_path_container(volume.work_dir_container, keystore)


def parse_env(entries: List[str]) -> Dict[str, str]:
    """
    Parses KEY=VALUE entries. The value may itself contain "=".

    :raises ConfigurationError: If an entry has no "=" or an empty name.
    """
    env: Dict[str, str] = {}
    for entry in entries:
        name, sep, value = entry.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"invalid env variable {entry!r}: expected KEY=VALUE")
        env[name] = value
    return env


def make_default_context(flags: CommonFlags,
                         args: List[str],
                         file_env: Optional[Dict[str, str]] = None,
                         engine: Optional[Engine] = None) -> BuildContext:
    """
    Builds the context common to every platform from the command flags.

    Args:
        flags: Parsed common flags.
        args: Positional arguments, the first one being the package.
        file_env: Variables loaded from an env file, overridden by flags.env.
        engine: Pre-resolved engine. Resolved from flags.engine when omitted.

    Returns:
        The build context.

    Raises:
        ConfigurationError: On any invalid flag.
    """
    volume = Volume.mount(flags.work_dir, flags.cache_dir)
    package = resolve_package(args, volume)

    if engine is None:
        engine = make_engine(flags.engine)

    env: Dict[str, str] = dict(file_env or {})
    env.update(parse_env(flags.env))
    if flags.ldflags:
        env["GOFLAGS"] = f'-ldflags="{flags.ldflags}"'

    name = flags.name
    if not name:
        pkg_dir = volume.work_dir_host if package == "." else join_path_host(volume.work_dir_host, package)
        name = os.path.basename(os.path.normpath(pkg_dir))

    return BuildContext(
        app_build=flags.app_build,
        app_id=flags.app_id,
        app_version=flags.app_version,
        cache_enabled=not flags.no_cache,
        debug=flags.debug,
        image=flags.image,
        engine=engine,
        env=env,
        icon=flags.icon,
        name=name,
        no_project_upload=flags.no_project_upload,
        package=package,
        pull=flags.pull,
        release=flags.release,
        tags=list(flags.tags),
        volume=volume,
    )
