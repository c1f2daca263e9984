"""
Contains the values passed between the steps of a backup run.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import FrozenSet, List, Mapping, Optional, Tuple

from docker_db_dump.errors import BackupError, ConfigurationError
from docker_db_dump.utils.converters import (ARCHIVE_SUFFIX, format_date,
                                             format_timestamp)


class ExitCode(IntEnum):
    """
    Process exit codes. The worst cause of a run wins, see RunOutcome.exit_code.
    """
    SUCCESS = 0
    BACKUP_FAILED = 1
    SELECTION_ERROR = 2
    NOTIFICATION_FAILED = 120
    INVALID_INVOCATION = 127


class TaskStatus(Enum):
    """
    Terminal status of a backup task.
    """
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


@dataclass(frozen=True)
class Container:
    """
    Snapshot of a container as reported by the runtime.
    """
    id: str
    name: str
    image: str
    status: str
    env: Mapping[str, str] = field(default_factory=dict, repr=False, hash=False)

    def __str__(self):
        return self.name

    @property
    def is_running(self) -> bool:
        return self.status == 'running'


@dataclass(frozen=True)
class SelectionConfig:
    """
    Names of the containers to back up and of those to leave out silently.
    """
    required: Tuple[str, ...] = ()
    skip: FrozenSet[str] = frozenset()

    def __post_init__(self):
        # keep the first occurrence of every name
        object.__setattr__(self, 'required', tuple(dict.fromkeys(self.required)))
        object.__setattr__(self, 'skip', frozenset(self.skip))
        both = sorted(self.required_set & self.skip)
        if both:
            raise ConfigurationError(
                f'Containers must not be required and skipped at once: {", ".join(both)}')

    @property
    def required_set(self) -> FrozenSet[str]:
        return frozenset(self.required)


@dataclass(frozen=True)
class Settings:
    """
    Settings of a run. Built once at startup.
    """
    selection: SelectionConfig
    backup_dir: Path
    keep: int = 4
    success_urls: Tuple[str, ...] = ()
    failure_urls: Tuple[str, ...] = ()
    always_urls: Tuple[str, ...] = ()
    heartbeat_timeout: float = 10.0
    verbose: bool = False
    log_dir: Optional[Path] = None
    log_level: str = 'INFO'


class BackupTask:
    """
    Backup of one container within one run.
    """

    def __init__(self, container: Container, backup_dir: Path,
                 timestamp: Optional[datetime] = None):
        """
        :param container: container to back up
        :param backup_dir: root folder of all archives
        :param timestamp: timestamp of the backup, now by default
        """
        self.container = container
        self.backup_dir = Path(backup_dir)
        self.timestamp = (timestamp if timestamp else datetime.now()).replace(microsecond=0)
        self.status: Optional[TaskStatus] = None
        self.error: Optional[BackupError] = None
        self.archive: Optional[Path] = None

    def __str__(self):
        return f'Backup of {self.container} @ {self.timestamp_str}'

    @property
    def timestamp_str(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def directory(self) -> Path:
        """
        Folder holding the archives of this container created on the task's day.
        """
        return self.backup_dir / self.container.name / format_date(self.timestamp)

    def path(self, extension: Optional[str] = None) -> Path:
        """
        Target file of the backup.
        :param extension: extension of the compressor, e.g. zst. None for plain SQL.
        :return: {backup_dir}/{name}/{date}/{name}-{timestamp}.sql[.extension]
        """
        suffix = ARCHIVE_SUFFIX + (f'.{extension}' if extension else '')
        return self.directory / f'{self.container.name}-{self.timestamp_str}{suffix}'

    @property
    def finished(self) -> bool:
        return self.status is not None

    def succeed(self, archive: Path):
        self._finish(TaskStatus.SUCCEEDED)
        self.archive = archive

    def fail(self, error: BackupError):
        self._finish(TaskStatus.FAILED)
        self.error = error

    def _finish(self, status: TaskStatus):
        if self.finished:
            raise RuntimeError(f'{self} already finished with status {self.status.value}')
        self.status = status


@dataclass
class RunOutcome:
    """
    Aggregated result of a run.
    """
    selection_errors: int = 0
    inventory_failed: bool = False
    tasks: List[BackupTask] = field(default_factory=list)
    notification_failed: bool = False

    @property
    def failed_tasks(self) -> List[BackupTask]:
        return [x for x in self.tasks if x.status != TaskStatus.SUCCEEDED]

    @property
    def backups_succeeded(self) -> bool:
        """
        True if the run had no selection error and every task succeeded.
        """
        return (self.selection_errors == 0 and not self.inventory_failed
                and len(self.failed_tasks) == 0)

    @property
    def exit_code(self) -> ExitCode:
        code = ExitCode.SUCCESS
        if self.inventory_failed or self.failed_tasks:
            code = ExitCode.BACKUP_FAILED
        if self.selection_errors > 0:
            code = max(code, ExitCode.SELECTION_ERROR)
        if code == ExitCode.SUCCESS and self.notification_failed:
            code = ExitCode.NOTIFICATION_FAILED
        return code
