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
Unit tests for the container image: command construction, lifecycle and finalize.
"""
import os
import subprocess
import pytest
from unittest import mock

from crosspack.MODELS.architecture import Architecture
from crosspack.RUNNERS.container_image import ImageState, RunOptions
from crosspack.RUNNERS.container_runner import ContainerRunner
from crosspack.UTILS.errors import ExecutionError, LifecycleError, PreparationError, RelocationError


def new_image(context, arch=Architecture.AMD64, os_name="linux", host="linux"):
    runner = ContainerRunner(context, host=host)
    return runner.new_image_container(arch, os_name, "docker.io/crosspack/toolchain:1.2-base")


class TestCmd:
    """Tests for the engine command line."""

    def test_docker_full_command(self, make_context, volume):
        ctx = make_context(env={"GOFLAGS": '-ldflags="-X main.v=1"'})
        image = new_image(ctx)
        image.set_mount("project", volume.work_dir_host, "/app")

        assert image.cmd(volume, RunOptions(), ["go", "version"]) == [
            "/usr/bin/docker", "run", "--rm", "-t",
            "-w", "/app",
            "-v", f"{volume.work_dir_host}:/app:z",
            "-u", "1000:1000", "--entrypoint", "fixuid",
            "-e", "CGO_ENABLED=1",
            "-e", "GOCACHE=/go/go-build",
            "-e", '"GOFLAGS=-ldflags=\\"-X main.v=1\\""',
            "-e", "GOOS=linux",
            "-e", "GOARCH=amd64",
            "docker.io/crosspack/toolchain:1.2-base",
            "-q", "go", "version",
        ]

    def test_podman_command(self, make_context, volume, podman_engine):
        image = new_image(make_context(engine=podman_engine))
        args = image.cmd(volume, None, ["true"])
        assert args[:6] == ["/usr/bin/podman", "run", "--rm", "-t", "-w", "/app"]
        assert args[6:10] == ["--userns", "keep-id", "-e", "use_podman=1"]
        assert "-u" not in args
        assert "--entrypoint" not in args
        assert args[-1] == "true"

    def test_docker_on_windows_host(self, make_context, volume):
        image = new_image(make_context(), host="windows")
        args = image.cmd(volume, None, ["true"])
        assert "-u" not in args
        assert "--entrypoint" not in args
        assert args[-2:] == ["docker.io/crosspack/toolchain:1.2-base", "true"]

    def test_debug_does_not_inject_quiet_flag(self, make_context, volume):
        image = new_image(make_context(debug=True))
        args = image.cmd(volume, None, ["true"])
        assert args[-2:] == ["docker.io/crosspack/toolchain:1.2-base", "true"]

    def test_quiet_flag_is_first_user_argument(self, make_context, volume):
        image = new_image(make_context())
        args = image.cmd(volume, None, ["sh", "-c", "echo ok"])
        index = args.index("docker.io/crosspack/toolchain:1.2-base")
        assert args[index + 1:] == ["-q", "sh", "-c", "echo ok"]

    def test_work_dir_override(self, make_context, volume):
        image = new_image(make_context())
        args = image.cmd(volume, RunOptions(work_dir="/app/cmd/tool"), ["true"])
        assert args[4:6] == ["-w", "/app/cmd/tool"]

    def test_freebsd_disables_quoting(self, make_context, volume):
        image = new_image(make_context(env={"GOFLAGS": "-ldflags=-s"}), os_name="freebsd")
        args = image.cmd(volume, None, ["true"])
        assert "GOFLAGS=-ldflags=-s" in args
        assert '"GOFLAGS=-ldflags=-s"' not in args

    def test_shared_env_before_image_env(self, make_context, volume):
        image = new_image(make_context(env={"CUSTOM": "1"}))
        image.set_env("CC", "gcc")
        envs = [a for a in image.cmd(volume, None, ["true"]) if "=" in a and not a.startswith("/")]
        assert envs == ["CGO_ENABLED=1", "GOCACHE=/go/go-build", "CUSTOM=1", "GOOS=linux", "GOARCH=amd64", "CC=gcc"]


class TestLifecycle:
    """Tests for the image state machine."""

    def test_initial_state(self, make_context):
        assert new_image(make_context()).state == ImageState.CREATED

    def test_prepare_without_pull_runs_nothing(self, make_context, fake_run):
        image = new_image(make_context())
        image.prepare()
        assert image.state == ImageState.PREPARED
        fake_run.assert_not_called()

    def test_prepare_pulls_image(self, make_context, fake_run):
        image = new_image(make_context(pull=True))
        image.prepare()
        assert fake_run.call_args.args[0] == ["/usr/bin/docker", "pull", "docker.io/crosspack/toolchain:1.2-base"]
        assert image.state == ImageState.PREPARED

    def test_pull_failure(self, make_context):
        image = new_image(make_context(pull=True))
        failed = subprocess.CompletedProcess([], 1, stdout="manifest unknown")
        with mock.patch("crosspack.RUNNERS.container_image.subprocess.run", return_value=failed):
            with pytest.raises(PreparationError, match="could not pull"):
                image.prepare()
        assert image.state == ImageState.CREATED

    def test_run_before_prepare(self, make_context, volume, fake_run):
        image = new_image(make_context())
        with pytest.raises(LifecycleError):
            image.run(volume, None, ["true"])
        fake_run.assert_not_called()

    def test_run_many_times(self, make_context, volume, fake_run):
        image = new_image(make_context())
        image.prepare()
        image.run(volume, None, ["true"])
        image.run(volume, None, ["true"])
        assert image.state == ImageState.RUN
        assert fake_run.call_count == 2

    def test_run_failure(self, make_context, volume):
        image = new_image(make_context())
        image.prepare()
        failed = subprocess.CompletedProcess([], 2)
        with mock.patch("crosspack.RUNNERS.container_image.subprocess.run", return_value=failed):
            with pytest.raises(ExecutionError):
                image.run(volume, None, ["false"])

    def test_missing_engine_binary(self, make_context, volume):
        image = new_image(make_context())
        image.prepare()
        with mock.patch("crosspack.RUNNERS.container_image.subprocess.run", side_effect=FileNotFoundError("docker")):
            with pytest.raises(ExecutionError, match="could not start"):
                image.run(volume, None, ["true"])

    def test_finalize_before_run(self, make_context):
        image = new_image(make_context())
        image.prepare()
        with pytest.raises(LifecycleError):
            image.finalize("app.tar.xz")

    def test_mounts_frozen_after_run(self, make_context, volume, fake_run):
        image = new_image(make_context())
        image.prepare()
        image.run(volume, None, ["true"])
        with pytest.raises(LifecycleError):
            image.set_mount("extra", "/tmp", "/extra")
        with pytest.raises(LifecycleError):
            image.set_env("X", "1")

    def test_close_from_any_state(self, make_context):
        image = new_image(make_context())
        image.close()
        assert image.state == ImageState.CLOSED
        with pytest.raises(LifecycleError):
            image.prepare()

    def test_context_manager_closes(self, make_context):
        with new_image(make_context()) as image:
            pass
        assert image.state == ImageState.CLOSED


class TestFinalize:
    """Tests for moving the artifact into the dist directory."""

    def run_image(self, context, volume, fake_run):
        image = new_image(context)
        image.prepare()
        image.run(volume, None, ["true"])
        return image

    def test_moves_artifact(self, make_context, volume, fake_run):
        image = self.run_image(make_context(), volume, fake_run)
        src = os.path.join(volume.tmp_dir_host, "linux-amd64", "app.tar.xz")
        os.makedirs(os.path.dirname(src))
        with open(src, "w") as f:
            f.write("package")

        dist = image.finalize("app.tar.xz")

        assert dist == os.path.join(volume.dist_dir_host, "linux-amd64", "app.tar.xz")
        assert os.path.isfile(dist)
        assert not os.path.exists(src)
        assert image.state == ImageState.FINALIZED

    def test_missing_artifact(self, make_context, volume, fake_run):
        image = self.run_image(make_context(), volume, fake_run)
        with pytest.raises(RelocationError, match="could not retrieve"):
            image.finalize("app.tar.xz")
        assert not os.path.exists(volume.dist_dir_host)
        assert image.state == ImageState.RUN
