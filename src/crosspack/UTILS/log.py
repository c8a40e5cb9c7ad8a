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
Logging setup shared by the CLI and the container layer.

Library modules only ask for a logger:

    from ..UTILS.log import get_logger
    logger = get_logger(__name__)
    logger.info("[i] Packaging app...")

The CLI entry point calls configure_logging() once, based on the
--debug / --silent flags.
"""
import logging
import sys
from typing import Optional

ROOT_LOGGER = "crosspack"


class _LevelFormatter(logging.Formatter):
    """
    Plain messages for info, level-tagged messages for everything else.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno == logging.INFO:
            return message
        return f"{record.levelname.lower()}: {message}"


def configure_logging(debug: bool = False, silent: bool = False, stream=None) -> logging.Logger:
    """
    Configure the crosspack logger hierarchy.

    Args:
        debug: Emit debug records (full engine command lines, pull output).
        silent: Only emit warnings and errors. Ignored when debug is set.
        stream: Output stream, defaults to stderr.

    Returns:
        The configured root crosspack logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if debug:
        level = logging.DEBUG
    elif silent:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_LevelFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger below the crosspack hierarchy."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")

