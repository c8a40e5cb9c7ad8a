"""
Command Line Interface for crosspack.
"""
import os
from typing import Any, Dict, List, Type

import click
from pydantic import ValidationError

from .. import __version__
from ..BUILDERS.android import Android
from ..BUILDERS.base import PlatformCommand
from ..BUILDERS.platforms import PLATFORMS
from ..MODELS.project_config import ProjectConfig
from ..PARSERS.config_parser import ConfigParser, load_env_file
from ..UTILS.errors import CrossPackError
from ..UTILS.log import configure_logging, get_logger

logger = get_logger(__name__)

# options whose default may come from crosspack.yml
PROJECT_KEYS = ("name", "app_id", "app_version", "app_build", "icon", "engine")


def common_options() -> List[click.Option]:
    """Options shared by every platform command."""
    return [
        click.Option(['--arch', 'target_arch'], default=None,
                     help='Target architectures separated by comma, "*" for all supported.'),
        click.Option(['--app-build'], type=int, default=None, help='Build number, greater than 0. [default: 1]'),
        click.Option(['--app-id'], default=None, help='Application ID used for distribution.'),
        click.Option(['--app-version'], default=None, help='Version number in the form x, x.y or x.y.z. [default: 1.0.0]'),
        click.Option(['--cache', 'cache_dir'], default=None, help='Host directory used as cache.'),
        click.Option(['--debug'], is_flag=True, help='Debug mode: print engine commands.'),
        click.Option(['--engine'], default=None, help='Container engine: docker, podman or a binary path. Autodetected when empty.'),
        click.Option(['--env', '-e'], multiple=True, help='Environment variable KEY=VALUE passed to the build. Repeatable.'),
        click.Option(['--env-file'], default=None, help='File of KEY=VALUE lines passed to the build.'),
        click.Option(['--fail-fast'], is_flag=True, help='Stop at the first failing target.'),
        click.Option(['--icon'], default=None, help='Application icon, relative to the project root. [default: Icon.png]'),
        click.Option(['--image'], default='', help='Custom container image to use for the build.'),
        click.Option(['--ldflags'], default='', help='Additional flags to pass to the external linker.'),
        click.Option(['--name'], default=None, help='Name of the application. Defaults to the package directory name.'),
        click.Option(['--no-cache'], is_flag=True, help='Do not use the go build cache.'),
        click.Option(['--no-project-upload'], is_flag=True, help='Do not check that project files exist on the host.'),
        click.Option(['--pull'], is_flag=True, help='Pull a newer version of the container image.'),
        click.Option(['--release'], is_flag=True, help='Release mode: prepare the package for distribution.'),
        click.Option(['--silent'], is_flag=True, help='Silent mode: only print warnings and errors.'),
        click.Option(['--tags'], default=None, help='List of build tags separated by comma.'),
        click.Option(['--work-dir', '--dir', 'work_dir'], default=None, help='Project root. [default: current directory]'),
    ]


def platform_options(platform_cls: Type[PlatformCommand]) -> List[click.Option]:
    """Options specific to one platform command."""
    if issubclass(platform_cls, Android):
        return [
            click.Option(['--keystore'], default='', help='Location of the .keystore file, relative to the project root.'),
            click.Option(['--keystore-pass'], default='', help='Password of the .keystore file.'),
            click.Option(['--key-pass'], default='', help="Password of the signer's private key."),
        ]
    return []


def build_flags(platform_cls: Type[PlatformCommand], project: ProjectConfig, options: Dict[str, Any]):
    """
    Merges the command line options over the project file defaults.

    :return: The flags model of the platform.
    """
    values = {k: v for k, v in options.items() if v is not None}
    for key in PROJECT_KEYS:
        if key not in values and getattr(project, key) is not None:
            values[key] = getattr(project, key)

    tags = values.pop('tags', None)
    values['tags'] = [t.strip() for t in tags.split(',') if t.strip()] if tags else list(project.tags)
    values['env'] = list(values.get('env', ()))
    return platform_cls.flags_class(**values)


def run_platform(platform_cls: Type[PlatformCommand], package: List[str], fail_fast: bool, options: Dict[str, Any]):
    """
    Parses the options, builds every target and reports the outcome.
    """
    configure_logging(debug=options.get('debug', False), silent=options.get('silent', False))
    try:
        work_dir = options.get('work_dir') or os.getcwd()
        project = ConfigParser().load(work_dir)
        flags = build_flags(platform_cls, project, options)
        file_env = dict(project.env)
        file_env.update(load_env_file(flags.env_file))

        command = platform_cls()
        command.parse(flags, list(package), file_env=file_env)
        report = command.run(fail_fast=fail_fast)
    except ValidationError as e:
        raise click.ClickException(f"invalid options: {e}")
    except CrossPackError as e:
        raise click.ClickException(str(e))

    for target, artifact in report.artifacts.items():
        click.echo(f"{target:20} {artifact}")
    if not report.ok:
        for target, error in report.failures.items():
            click.echo(f"{target:20} FAILED: {error}", err=True)
        for target in report.skipped:
            click.echo(f"{target:20} SKIPPED", err=True)
        raise click.exceptions.Exit(1)


def make_command(os_name: str, platform_cls: Type[PlatformCommand]) -> click.Command:
    """
    Creates the click command of a platform from the dispatch table.
    """
    def callback(package, fail_fast, **options):
        run_platform(platform_cls, package, fail_fast, options)

    params = common_options() + platform_options(platform_cls)
    params.append(click.Argument(['package'], nargs=-1))
    return click.Command(
        name=os_name,
        callback=callback,
        params=params,
        help=platform_cls().usage(),
        short_help=platform_cls.description,
    )


@click.group()
@click.version_option(__version__, prog_name='crosspack')
def cli():
    """
    crosspack - cross-compile and package applications in containers.

    Each target platform is built in a container image holding its
    toolchain; packages are written to crosspack/dist/<os>-<arch>.
    """


for _name, _platform in sorted(PLATFORMS.items()):
    cli.add_command(make_command(_name, _platform))


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == '__main__':
    main()
