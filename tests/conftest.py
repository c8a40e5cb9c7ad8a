"""
Shared fixtures: a project volume under tmp_path and fake engines.
No real container engine is ever started by the test suite.
"""
import subprocess
import pytest
from unittest import mock

from crosspack.MODELS.context import BuildContext
from crosspack.MODELS.volume import Volume
from crosspack.RUNNERS.engine import DockerPermissions, Engine, EngineFamily


@pytest.fixture
def volume(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    return Volume.mount(str(project), str(tmp_path / "cache"))


@pytest.fixture
def docker_engine():
    return Engine(EngineFamily.DOCKER, "/usr/bin/docker", DockerPermissions(user_ids=lambda: (1000, 1000)))


@pytest.fixture
def podman_engine():
    return Engine(EngineFamily.PODMAN, "/usr/bin/podman")


@pytest.fixture
def make_context(volume, docker_engine):
    def factory(**overrides):
        values = dict(engine=docker_engine, name="app", volume=volume, cache_enabled=False)
        values.update(overrides)
        return BuildContext(**values)
    return factory


@pytest.fixture
def fake_run():
    """
    Replaces subprocess.run in the container image module.
    Every call succeeds; calls are recorded in fake_run.call_args_list.
    """
    with mock.patch("crosspack.RUNNERS.container_image.subprocess.run") as run:
        run.side_effect = lambda args, **kwargs: subprocess.CompletedProcess(args, 0, stdout="")
        yield run

