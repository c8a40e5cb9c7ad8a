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
Unit tests for the build context: package and keystore validation.
"""
import os
import pytest
from crosspack.MODELS.context import (
    CommonFlags,
    make_default_context,
    parse_env,
    resolve_keystore,
    resolve_package,
)
from crosspack.UTILS.errors import ConfigurationError


class TestResolveKeystore:
    """Tests for resolve_keystore."""

    def test_absolute_path_rejected(self, volume):
        with pytest.raises(ConfigurationError, match="relative to the project root"):
            resolve_keystore(volume, "/etc/my.keystore", no_project_upload=False)

    def test_absolute_path_rejected_without_upload(self, volume):
        with pytest.raises(ConfigurationError, match="relative to the project root"):
            resolve_keystore(volume, "/etc/my.keystore", no_project_upload=True)

    def test_missing_relative_path_rejected(self, volume):
        with pytest.raises(ConfigurationError, match="under the project root"):
            resolve_keystore(volume, "keys/my.keystore", no_project_upload=False)

    def test_missing_relative_path_accepted_without_upload(self, volume):
        assert resolve_keystore(volume, "keys/my.keystore", no_project_upload=True) == "/app/keys/my.keystore"

    def test_existing_relative_path(self, volume):
        os.makedirs(os.path.join(volume.work_dir_host, "keys"))
        open(os.path.join(volume.work_dir_host, "keys", "my.keystore"), "w").close()
        assert resolve_keystore(volume, "keys/my.keystore", no_project_upload=False) == "/app/keys/my.keystore"

    def test_escaping_path_rejected(self, volume):
        with pytest.raises(ConfigurationError):
            resolve_keystore(volume, "../outside.keystore", no_project_upload=True)

    def test_empty(self, volume):
        assert resolve_keystore(volume, "", no_project_upload=False) == ""


class TestResolvePackage:
    """Tests for resolve_package."""

    def test_default_is_root(self, volume):
        assert resolve_package([], volume) == "."

    def test_relative(self, volume):
        assert resolve_package(["./cmd/app"], volume) == "cmd/app"

    def test_relative_without_dot_prefix(self, volume):
        with pytest.raises(ConfigurationError, match="must start with ./"):
            resolve_package(["cmd/app"], volume)

    def test_absolute_under_root(self, volume):
        path = os.path.join(volume.work_dir_host, "cmd", "app")
        assert resolve_package([path], volume) == "cmd/app"

    def test_outside_root(self, volume):
        with pytest.raises(ConfigurationError, match="under the project root"):
            resolve_package(["./../other"], volume)


class TestParseEnv:
    """Tests for parse_env."""

    def test_value_may_contain_equal_sign(self):
        assert parse_env(["A=1", "GOFLAGS=-ldflags=-s"]) == {"A": "1", "GOFLAGS": "-ldflags=-s"}

    def test_missing_separator(self):
        with pytest.raises(ConfigurationError):
            parse_env(["NOVALUE"])


class TestMakeDefaultContext:
    """Tests for make_default_context."""

    def flags(self, volume, **values):
        return CommonFlags(work_dir=volume.work_dir_host, cache_dir=os.path.dirname(volume.cache_dir_host), **values)

    def test_defaults(self, volume, docker_engine):
        ctx = make_default_context(self.flags(volume), [], engine=docker_engine)
        assert ctx.name == "project"
        assert ctx.package == "."
        assert ctx.cache_enabled is True
        assert ctx.app_build == 1
        assert ctx.volume == volume

    def test_name_from_package(self, volume, docker_engine):
        ctx = make_default_context(self.flags(volume), ["./cmd/tool"], engine=docker_engine)
        assert ctx.name == "tool"
        assert ctx.package_dir_container == "/app/cmd/tool"

    def test_env_precedence_and_ldflags(self, volume, docker_engine):
        flags = self.flags(volume, env=["A=flag"], ldflags="-s -w", no_cache=True)
        ctx = make_default_context(flags, [], file_env={"A": "file", "B": "file"}, engine=docker_engine)
        assert ctx.env == {"A": "flag", "B": "file", "GOFLAGS": '-ldflags="-s -w"'}
        assert ctx.cache_enabled is False

    def test_app_build_must_be_positive(self):
        with pytest.raises(ValueError):
            CommonFlags(app_build=0)
