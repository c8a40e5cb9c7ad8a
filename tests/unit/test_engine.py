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
Unit tests for container engine selection and permission handling.
"""
import pytest
from crosspack.RUNNERS.engine import (
    DockerPermissions,
    Engine,
    EngineFamily,
    PodmanPermissions,
    classify,
    make_engine,
)
from crosspack.UTILS.errors import ConfigurationError


def fake_which(available):
    return lambda name: available.get(name)


class TestMakeEngine:
    """Tests for make_engine."""

    def test_autodetect_prefers_docker(self):
        engine = make_engine("", which=fake_which({"docker": "/usr/bin/docker", "podman": "/usr/bin/podman"}))
        assert engine.family == EngineFamily.DOCKER
        assert engine.binary == "/usr/bin/docker"

    def test_autodetect_falls_back_to_podman(self):
        engine = make_engine("", which=fake_which({"podman": "/usr/bin/podman"}))
        assert engine.is_podman()

    def test_autodetect_nothing_found(self):
        with pytest.raises(ConfigurationError, match="not found"):
            make_engine("", which=fake_which({}))

    def test_named_engine_missing(self):
        with pytest.raises(ConfigurationError, match="podman binary not found"):
            make_engine("podman", which=fake_which({"docker": "/usr/bin/docker"}))

    def test_custom_podman_path(self):
        engine = make_engine("/opt/podman-remote", which=fake_which({"/opt/podman-remote": "/opt/podman-remote"}))
        assert engine.is_podman()

    def test_unknown_binary_is_treated_as_docker(self):
        engine = make_engine("nerdctl", which=fake_which({"nerdctl": "/usr/local/bin/nerdctl"}))
        assert engine.is_docker()
        assert engine.binary == "/usr/local/bin/nerdctl"


class TestClassify:
    """Tests for engine family classification."""

    def test_podman(self):
        assert classify("/usr/bin/Podman") == EngineFamily.PODMAN

    def test_docker(self):
        assert classify("docker.exe") == EngineFamily.DOCKER

    def test_fallback(self):
        assert classify("containerd-ctl") == EngineFamily.DOCKER


class TestPermissions:
    """Tests for the permission strategies."""

    def test_strategy_follows_family(self):
        assert isinstance(Engine(EngineFamily.PODMAN, "podman").permissions, PodmanPermissions)
        assert isinstance(Engine(EngineFamily.DOCKER, "docker").permissions, DockerPermissions)

    def test_podman_uses_user_namespace(self):
        flags, prefix = PodmanPermissions().arguments("linux", debug=False)
        assert flags == ["--userns", "keep-id", "-e", "use_podman=1"]
        assert prefix == []

    def test_docker_maps_host_user(self):
        flags, prefix = DockerPermissions(user_ids=lambda: (501, 20)).arguments("darwin", debug=False)
        assert flags == ["-u", "501:20", "--entrypoint", "fixuid"]
        assert prefix == ["-q"]

    def test_docker_debug_keeps_fixuid_verbose(self):
        _, prefix = DockerPermissions(user_ids=lambda: (1000, 1000)).arguments("linux", debug=True)
        assert prefix == []

    def test_docker_on_windows_host(self):
        assert DockerPermissions(user_ids=lambda: (0, 0)).arguments("windows", debug=False) == ([], [])

    def test_docker_without_user_ids(self):
        assert DockerPermissions(user_ids=lambda: None).arguments("linux", debug=False) == ([], [])


def test_engine_equality():
    assert Engine(EngineFamily.DOCKER, "docker") == Engine(EngineFamily.DOCKER, "docker")
    assert Engine(EngineFamily.DOCKER, "docker") != Engine(EngineFamily.PODMAN, "docker")
