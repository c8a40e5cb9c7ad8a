"""
Translation of mounts and environment variables into engine flags.
"""
from typing import Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict


class Mount(BaseModel):
    """
    A host directory bound into the container.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    host: str
    container: str


def quote(token: str) -> str:
    """Double quotes a token, escaping backslashes and double quotes."""
    escaped = token.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def compose_mount_flags(mounts: Iterable[Mount]) -> List[str]:
    """
    Builds the volume flags for a set of mounts, in the given order.

    The ":z" suffix asks SELinux enabled hosts to relabel the content;
    engines on other hosts ignore it.

    :param mounts: Mounts to translate.
    :return: A flat list of "-v", "host:container:z" pairs.
    """
    args: List[str] = []
    for mount in mounts:
        args.extend(["-v", f"{mount.host}:{mount.container}:z"])
    return args


def compose_env_flags(environ: Mapping[str, str], quote_needed: bool = True) -> List[str]:
    """
    Builds the environment flags for a set of variables, in mapping order.

    :param environ: Variable names and values.
    :param quote_needed: Quote NAME=VALUE when the value itself contains "=".
        The engine argument parser needs it, but the freebsd toolchain breaks on it.
    :return: A flat list of "-e", "NAME=VALUE" pairs.
    """
    args: List[str] = []
    for name, value in environ.items():
        env = f"{name}={value}"
        if quote_needed and "=" in value:
            env = quote(env)
        args.extend(["-e", env])
    return args
