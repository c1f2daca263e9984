from datetime import datetime, timedelta
from pathlib import Path

from docker.errors import DockerException

from docker_db_dump.errors import DetectionError, DumpExecutionError
from docker_db_dump.notify.heartbeat import Heartbeat
from docker_db_dump.orchestrator import Orchestrator
from docker_db_dump.storage.compressors import PASS_THROUGH
from docker_db_dump.utils.datatypes import (ExitCode, SelectionConfig, Settings,
                                            TaskStatus)

from helpers import FakeClient, make_container, ticking_clock, write_archive

NOW = datetime(2026, 10, 19, 3, 0, 0)


class RecordingHeartbeat(Heartbeat):
    def __init__(self, delivered: bool = True) -> None:
        super().__init__()
        self.delivered = delivered
        self.calls = []

    def notify(self, succeeded: bool) -> bool:
        self.calls.append(succeeded)
        return self.delivered


def _settings(tmpdir: Path, required, skip=(), keep=4) -> Settings:
    return Settings(selection=SelectionConfig(tuple(required), frozenset(skip)),
                    backup_dir=tmpdir / '_db_backups', keep=keep)


def _run(settings: Settings, client: FakeClient, heartbeat=None):
    heartbeat = heartbeat if heartbeat else RecordingHeartbeat()
    orchestrator = Orchestrator(settings, client, compressor=PASS_THROUGH,
                                heartbeat=heartbeat, clock=ticking_clock(NOW))
    return orchestrator.run(), heartbeat


def _files(path: Path) -> list:
    return sorted(x.relative_to(path).as_posix() for x in path.rglob('*') if x.is_file())


def test_postgres_backup(tmpdir: Path) -> None:
    client = FakeClient([make_container('db1', image='postgres:16', POSTGRES_USER='app')],
                        tools={'db1': ['pg_dumpall']})

    outcome, heartbeat = _run(_settings(tmpdir, ['db1']), client)

    assert outcome.exit_code == ExitCode.SUCCESS
    assert heartbeat.calls == [True]
    assert _files(tmpdir / '_db_backups') == ['db1/2026-10-19/db1-2026-10-19T03:00:00.sql']
    assert outcome.tasks[0].status == TaskStatus.SUCCEEDED
    assert outcome.tasks[0].archive == \
        tmpdir / '_db_backups/db1/2026-10-19/db1-2026-10-19T03:00:00.sql'


def test_exited_container(tmpdir: Path) -> None:
    client = FakeClient([make_container('db2', image='mysql:8', status='exited',
                                        MYSQL_ROOT_PASSWORD='pw')],
                        tools={'db2': ['mysqldump']})

    outcome, heartbeat = _run(_settings(tmpdir, ['db2']), client)

    assert outcome.exit_code == ExitCode.SELECTION_ERROR
    assert heartbeat.calls == [False]
    assert outcome.tasks == []
    assert client.commands == []
    assert not (tmpdir / '_db_backups' / 'db2').exists()


def test_missing_container_with_successful_backup(tmpdir: Path) -> None:
    client = FakeClient([make_container('db1', POSTGRES_USER='app')],
                        tools={'db1': ['pg_dumpall']})

    outcome, heartbeat = _run(_settings(tmpdir, ['db1', 'db9']), client)

    assert outcome.exit_code == ExitCode.SELECTION_ERROR
    assert [x.status for x in outcome.tasks] == [TaskStatus.SUCCEEDED]
    assert heartbeat.calls == [False]


def test_keep_two_of_five(tmpdir: Path) -> None:
    backup_dir = tmpdir / '_db_backups'
    old = [write_archive(backup_dir, 'db1', NOW - timedelta(days=x)) for x in range(5, 0, -1)]
    client = FakeClient([make_container('db1', POSTGRES_USER='app')],
                        tools={'db1': ['pg_dumpall']})

    outcome, _ = _run(_settings(tmpdir, ['db1'], keep=2), client)

    assert outcome.exit_code == ExitCode.SUCCESS
    assert _files(backup_dir) == [
        old[-1].relative_to(backup_dir).as_posix(),
        'db1/2026-10-19/db1-2026-10-19T03:00:00.sql',
    ]


def test_failure_does_not_stop_next_container(tmpdir: Path) -> None:
    containers = [
        make_container('broken', image='postgres:15'),
        make_container('failing', POSTGRES_USER='app'),
        make_container('db1', image='mariadb:11', MARIADB_ROOT_PASSWORD='pw'),
    ]
    client = FakeClient(containers,
                        tools={'failing': ['pg_dumpall'], 'db1': ['mariadb-dump']},
                        dumps={'failing': ([(b'partial', None)], 1)})

    outcome, heartbeat = _run(_settings(tmpdir, ['broken', 'failing', 'db1']), client)

    assert outcome.exit_code == ExitCode.BACKUP_FAILED
    assert [x.status for x in outcome.tasks] == [
        TaskStatus.FAILED, TaskStatus.FAILED, TaskStatus.SUCCEEDED]
    assert isinstance(outcome.tasks[0].error, DetectionError)
    assert isinstance(outcome.tasks[1].error, DumpExecutionError)
    assert heartbeat.calls == [False]
    # only the successful archive exists, nothing partial
    assert _files(tmpdir / '_db_backups') == ['db1/2026-10-19/db1-2026-10-19T03:00:02.sql']


def test_failed_backup_still_prunes(tmpdir: Path) -> None:
    backup_dir = tmpdir / '_db_backups'
    old = [write_archive(backup_dir, 'db1', NOW - timedelta(days=x)) for x in range(3, 0, -1)]
    leftover = old[0].parent / (old[0].name + '.part')
    leftover.write_bytes(b'crashed')
    client = FakeClient([make_container('db1', POSTGRES_USER='app')],
                        tools={'db1': ['pg_dumpall']}, dumps={'db1': ([], 0)})

    outcome, _ = _run(_settings(tmpdir, ['db1'], keep=2), client)

    assert outcome.exit_code == ExitCode.BACKUP_FAILED
    assert not leftover.exists()
    assert _files(backup_dir) == [x.relative_to(backup_dir).as_posix() for x in old[1:]]


def test_notification_failure(tmpdir: Path) -> None:
    client = FakeClient([make_container('db1', POSTGRES_USER='app')],
                        tools={'db1': ['pg_dumpall']})

    outcome, _ = _run(_settings(tmpdir, ['db1']), client, RecordingHeartbeat(delivered=False))

    assert outcome.exit_code == ExitCode.NOTIFICATION_FAILED


def test_notification_failure_does_not_mask_backup_failure(tmpdir: Path) -> None:
    client = FakeClient([make_container('db1')])

    outcome, _ = _run(_settings(tmpdir, ['db1']), client, RecordingHeartbeat(delivered=False))

    assert outcome.exit_code == ExitCode.BACKUP_FAILED


def test_docker_unavailable(tmpdir: Path) -> None:
    client = FakeClient(inventory_error=DockerException('socket not found'))

    outcome, heartbeat = _run(_settings(tmpdir, ['db1']), client)

    assert outcome.exit_code == ExitCode.BACKUP_FAILED
    assert heartbeat.calls == [False]
