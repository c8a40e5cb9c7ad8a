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
Exceptions raised while building and packaging targets.

Every failure is reported to the caller as one of these; nothing in the
container layer retries on its own.
"""


class CrossPackError(Exception):
    """Base class for all crosspack errors."""


class ConfigurationError(CrossPackError):
    """
    Invalid user input detected before any container is created
    (unknown architecture, absolute keystore path, package outside
    the project root, missing engine binary...).
    """


class PreparationError(CrossPackError):
    """The container image could not be refreshed before the build."""


class ExecutionError(CrossPackError):
    """A container run exited with a failure status."""


class RelocationError(CrossPackError):
    """The packaged artifact could not be retrieved or moved."""


class LifecycleError(CrossPackError):
    """An operation was attempted in the wrong container image state."""
