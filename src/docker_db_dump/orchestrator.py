"""
Backs up all selected database containers one after another.
"""
from datetime import datetime
from typing import Callable, Optional

from docker.errors import DockerException
from loguru import logger
from requests.exceptions import RequestException

from docker_db_dump.containers.client import Client
from docker_db_dump.containers.selection import select_containers
from docker_db_dump.dump.engine import DumpEngine
from docker_db_dump.errors import BackupError
from docker_db_dump.notify.heartbeat import Heartbeat
from docker_db_dump.storage.compressors import Compressor
from docker_db_dump.storage.retention import ArchiveStore, prune_archives
from docker_db_dump.storage.writer import ArchiveWriter
from docker_db_dump.utils.datatypes import (BackupTask, Container, RunOutcome,
                                            Settings)


class Orchestrator:
    """
    Drives a backup run: inventory, selection, dump, retention, heartbeat.
    """

    def __init__(self, settings: Settings, client: Client,
                 compressor: Optional[Compressor] = None,
                 heartbeat: Optional[Heartbeat] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        :param settings: settings of the run
        :param client: docker client
        :param compressor: compressor for the archives. Best available by default.
        :param heartbeat: notifier. Built from the settings by default.
        :param clock: source of the task timestamps
        """
        self.settings = settings
        self.client = client
        self.writer = ArchiveWriter(DumpEngine(client), compressor)
        self.store = ArchiveStore(settings.backup_dir)
        self.heartbeat = heartbeat if heartbeat else Heartbeat(
            success_urls=settings.success_urls,
            failure_urls=settings.failure_urls,
            always_urls=settings.always_urls,
            timeout=settings.heartbeat_timeout,
        )
        self.clock = clock

    def backup(self, container: Container) -> BackupTask:
        """
        Back up a single container and prune its old archives.
        Never raises a BackupError, the task carries it.
        """
        task = BackupTask(container, self.settings.backup_dir, timestamp=self.clock())
        logger.info(f'Backup {container} begins')
        try:
            archive = self.writer.write(task)
        except BackupError as e:
            logger.error(f'Backup of {container} failed: {e}')
            task.fail(e)
        else:
            task.succeed(archive)
        prune_archives(self.store, container.name, self.settings.keep)
        return task

    def run(self) -> RunOutcome:
        """
        Back up every selected container and send the heartbeats.
        :return: outcome of the run
        """
        outcome = RunOutcome()
        logger.info(f'Backup Directory: {self.settings.backup_dir}')
        try:
            inventory = self.client.list_containers()
        except (DockerException, RequestException) as e:
            logger.critical(f'Could not list the containers: {e}')
            outcome.inventory_failed = True
        else:
            selection = select_containers(inventory, self.settings.selection)
            outcome.selection_errors = selection.errors
            for container in selection.containers:
                outcome.tasks.append(self.backup(container))

        failed = len(outcome.failed_tasks)
        summary = (f'{len(outcome.tasks) - failed} backups succeeded, {failed} failed, '
                   f'{outcome.selection_errors} selection errors')
        if outcome.backups_succeeded:
            logger.info(summary)
        else:
            logger.error(summary)

        outcome.notification_failed = not self.heartbeat.notify(outcome.backups_succeeded)
        logger.debug(f'Exit code: {int(outcome.exit_code)}')
        return outcome
