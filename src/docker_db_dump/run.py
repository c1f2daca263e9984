"""
Creates backups of the databases running in docker containers by streaming
their dumps into compressed files.
"""
import sys
from pathlib import Path
from typing import Optional, Sequence

import click
from loguru import logger

from docker_db_dump.containers.client import Client
from docker_db_dump.errors import ConfigurationError
from docker_db_dump.orchestrator import Orchestrator
from docker_db_dump.utils.config import load_settings
from docker_db_dump.utils.datatypes import ExitCode
from docker_db_dump.utils.logging import setup_logging


@click.command()
@click.argument('containers', nargs=-1)
@click.option(
    '-s', '--skip',
    multiple=True,
    help='Database container that is not backed up and not warned about. Repeatable.',
)
@click.option(
    '-d', '--backup-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Folder for the archives. ./_db_backups by default.',
)
@click.option(
    '-k', '--keep',
    type=int,
    default=None,
    help='Archives kept per container. 0 keeps all of them. 4 by default.',
)
@click.option('--success-url', multiple=True, help='Heartbeat URL pinged after a successful run.')
@click.option('--failure-url', multiple=True, help='Heartbeat URL pinged after a failed run.')
@click.option('--always-url', multiple=True, help='Heartbeat URL pinged after every run.')
@click.option(
    '-c', '--config-folder',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Folder with default.toml and config.toml. Only the environment is read if unset.',
)
@click.option('-v', '--verbose', is_flag=True, default=False, help='Print debug messages.')
@click.version_option(package_name='docker_db_dump')
def cli(containers, skip, backup_dir, keep, success_url, failure_url, always_url,
        config_folder, verbose) -> int:
    """
    Back up the databases (MySQL, MariaDB, PostgreSQL) of the given running
    CONTAINERS without stopping them.

    Archives are written to BACKUP_DIR/<container>/<date>/. Exit codes:
    0 success, 1 a backup failed, 2 a container is missing or not running,
    120 heartbeat failed, 127 invalid invocation.
    """
    setup_logging(verbose)
    try:
        settings = load_settings(
            config_folder=config_folder,
            required=containers,
            skip=skip,
            backup_dir=backup_dir,
            keep=keep,
            success_urls=success_url,
            failure_urls=failure_url,
            always_urls=always_url,
            verbose=verbose,
        )
    except ConfigurationError as e:
        logger.critical(str(e))
        return ExitCode.INVALID_INVOCATION
    setup_logging(settings.verbose, settings.log_dir, settings.log_level)

    outcome = Orchestrator(settings, Client()).run()
    return outcome.exit_code


def main(args: Optional[Sequence[str]] = None):
    """
    Entry point. Maps invalid invocations to exit code 127.
    """
    try:
        code = cli.main(args=args, prog_name='docker-db-dump', standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(ExitCode.INVALID_INVOCATION)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.secho('Aborted!', fg='red', file=sys.stderr)
        sys.exit(ExitCode.BACKUP_FAILED)
    sys.exit(int(code or 0))


if __name__ == '__main__':
    main()
