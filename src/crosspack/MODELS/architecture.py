"""
Target architectures and parsing of the --arch flag.
"""
from enum import Enum
from typing import Iterable, List, Sequence, Union

from ..UTILS.errors import ConfigurationError

ALL_SUPPORTED = "*"


class Architecture(str, Enum):
    """
    Instruction set architectures a target can be built for.
    """
    AMD64 = "amd64"
    I386 = "386"
    ARM = "arm"
    ARM64 = "arm64"
    # fat build covering every architecture the target supports, e.g. an android APK
    MULTIPLE = "multiple"

    def __str__(self) -> str:
        return self.value

    @property
    def is_multiple(self) -> bool:
        return self is Architecture.MULTIPLE


def parse_target_arch(values: Union[str, Iterable[str]],
                      supported: Sequence[Architecture]) -> List[Architecture]:
    """
    Parses the requested architectures against the ones a platform supports.

    :param values: Comma separated string or list of architecture names. "*" selects all supported.
    :param supported: Architectures supported by the target platform.
    :return: The requested architectures, in request order and without duplicates.
    :raises ConfigurationError: If a value is unknown or not supported by the platform.
    """
    if isinstance(values, str):
        values = values.split(",")
    names = [v.strip() for v in values if v and v.strip()]
    if not names:
        raise ConfigurationError(
            f"no target architecture specified. Supported: {_format(supported)}")

    targets: List[Architecture] = []
    for name in names:
        if name == ALL_SUPPORTED:
            return list(supported)
        try:
            arch = Architecture(name)
        except ValueError:
            arch = None
        if arch is None or arch not in supported:
            raise ConfigurationError(
                f"arch {name!r} is not supported. Supported: {_format(supported)}")
        if arch not in targets:
            targets.append(arch)
    return targets


def _format(supported: Sequence[Architecture]) -> str:
    return ", ".join(a.value for a in supported)
