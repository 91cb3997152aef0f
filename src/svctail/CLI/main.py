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
Command Line Interface for svctail.
"""
import click

from ..errors import SvctailError, UsageError
from ..MANAGERS.log_aggregator import AggregationSession
from ..MANAGERS.log_follower import FollowerFailure
from ..MODELS.orchestration_config import OrchestrationConfig
from ..PARSERS.config_parser import ConfigParser
from ..UTILS.log_printer import LogPrinter
from ..UTILS.settings import Settings, configure_logging


@click.group()
@click.option('--file', '-f', default=None, help='Configuration file path')
@click.option('--log-level', default=None, help='Level of svctail diagnostics (e.g. DEBUG)')
@click.pass_context
def cli(ctx, file, log_level):
    """
    svctail - follow the logs of your services.

    Replays what services have already logged, oldest first, then keeps
    printing new output as it is written.
    """
    ctx.ensure_object(dict)
    try:
        settings = Settings.from_env()
        configure_logging(log_level or settings.log_level)
    except (SvctailError, ValueError) as e:
        raise click.ClickException(str(e))
    ctx.obj['settings'] = settings
    ctx.obj['file'] = file or settings.config_file


def _load_config(ctx) -> OrchestrationConfig:
    """
    Parses the configuration file named on the command line.
    """
    if 'config' not in ctx.obj:
        parser = ConfigParser(log_dir=ctx.obj['settings'].log_dir)
        try:
            ctx.obj['config'] = parser.parse(ctx.obj['file'])
        except SvctailError as e:
            raise click.ClickException(str(e))
    return ctx.obj['config']


def _report_failure(failure: FollowerFailure):
    click.echo(
        f"Warning: stopped following {failure.source.service_name}: {failure.error}",
        err=True,
    )


@cli.command()
@click.option('--no-follow', is_flag=True,
              help='Print existing logs and exit. A last line still being written '
                   '(no trailing newline yet) is not shown.')
@click.argument('names', nargs=-1)
@click.pass_context
def tail(ctx, names, no_follow):
    """Show and follow logs of services or groups."""
    if not names:
        raise click.UsageError("At least one service or group must be specified")
    config = _load_config(ctx)

    click.echo("=== Logs ===")
    try:
        selection = config.get_services_or_groups(list(names))
        session = AggregationSession(selection,
                                     settings=ctx.obj['settings'],
                                     on_error=_report_failure)
        printer = LogPrinter(session.multiple)
        with session:
            for line in session.history():
                printer(line)
            if not no_follow:
                for line in session.live():
                    printer(line)
    except UsageError as e:
        raise click.UsageError(str(e))
    except SvctailError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        click.echo("\nStopping log tailing...")


cli.add_command(tail, name='logs')


@cli.command(name='list')
@click.pass_context
def list_(ctx):
    """List configured services and groups"""
    config = _load_config(ctx)
    click.echo(f"{'SERVICE':20} {'LAUNCHABLE':10} LOG")
    click.echo("-" * 50)
    for name, service in config.services.items():
        launchable = "yes" if service.has_launch_command() else "no"
        click.echo(f"{name:20} {launchable:10} {service.get_run_log()}")

    if config.groups:
        click.echo("")
        click.echo(f"{'GROUP':20} CHILDREN")
        click.echo("-" * 50)
        for name, group in config.groups.items():
            click.echo(f"{name:20} {', '.join(group.children)}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
