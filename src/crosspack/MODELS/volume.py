"""
Host and container directory layout shared by every build container.
"""
import os
import posixpath
import sys
from typing import Optional

from pydantic import BaseModel, ConfigDict

PREFIX = "crosspack"
BIN_DIR_NAME = "bin"
DIST_DIR_NAME = "dist"
TMP_DIR_NAME = "tmp"
CACHE_DIR_NAME = PREFIX
GO_CACHE_DIR_NAME = "go-build"

WORK_DIR_CONTAINER = "/app"
CACHE_DIR_CONTAINER = "/go"


def join_path_host(*parts: str) -> str:
    """Joins path elements using the host separator."""
    return os.path.join(*parts)


def join_path_container(*parts: str) -> str:
    """Joins path elements for use inside a container. Always POSIX."""
    parts = [p.replace("\\", "/") for p in parts if p]
    if not parts:
        return ""
    return posixpath.normpath(posixpath.join(*parts))


def default_cache_dir() -> str:
    """
    Returns the user cache directory of the current platform.
    """
    if sys.platform.startswith("win"):
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return base
    elif sys.platform == "darwin":
        return os.path.join(os.path.expanduser("~"), "Library", "Caches")
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg and os.path.isabs(xdg):
        return xdg
    return os.path.join(os.path.expanduser("~"), ".cache")


class Volume(BaseModel):
    """
    Translates the logical directories of a build between the host and
    the container path spaces.
    """
    model_config = ConfigDict(frozen=True)

    work_dir_host: str
    cache_dir_host: str

    @classmethod
    def mount(cls, work_dir_host: Optional[str] = None,
              cache_dir_host: Optional[str] = None) -> "Volume":
        """
        Creates the volume layout for a project.

        :param work_dir_host: Project root on the host, defaults to the current directory.
        :param cache_dir_host: Cache root on the host, defaults to the user cache directory.
        :return: A Volume with absolute host paths.
        """
        work_dir = os.path.abspath(work_dir_host or os.getcwd())
        cache_root = os.path.abspath(cache_dir_host or default_cache_dir())
        return cls(work_dir_host=work_dir,
                   cache_dir_host=join_path_host(cache_root, CACHE_DIR_NAME))

    # host side

    @property
    def bin_dir_host(self) -> str:
        return join_path_host(self.work_dir_host, PREFIX, BIN_DIR_NAME)

    @property
    def dist_dir_host(self) -> str:
        return join_path_host(self.work_dir_host, PREFIX, DIST_DIR_NAME)

    @property
    def tmp_dir_host(self) -> str:
        return join_path_host(self.work_dir_host, PREFIX, TMP_DIR_NAME)

    @property
    def go_cache_dir_host(self) -> str:
        return join_path_host(self.cache_dir_host, GO_CACHE_DIR_NAME)

    # container side

    @property
    def work_dir_container(self) -> str:
        return WORK_DIR_CONTAINER

    @property
    def bin_dir_container(self) -> str:
        return join_path_container(WORK_DIR_CONTAINER, PREFIX, BIN_DIR_NAME)

    @property
    def dist_dir_container(self) -> str:
        return join_path_container(WORK_DIR_CONTAINER, PREFIX, DIST_DIR_NAME)

    @property
    def tmp_dir_container(self) -> str:
        return join_path_container(WORK_DIR_CONTAINER, PREFIX, TMP_DIR_NAME)

    @property
    def cache_dir_container(self) -> str:
        return CACHE_DIR_CONTAINER

    @property
    def go_cache_dir_container(self) -> str:
        return join_path_container(CACHE_DIR_CONTAINER, GO_CACHE_DIR_NAME)
