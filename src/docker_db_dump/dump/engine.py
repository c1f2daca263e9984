"""
Detects the database engine of a container and streams its dump.
"""
from collections import deque
from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence

from docker.errors import DockerException
from loguru import logger
from requests.exceptions import RequestException

from docker_db_dump.dump.engines.base import DumpStrategy
from docker_db_dump.dump.engines.mysql import MariaDBStrategy, MySQLStrategy
from docker_db_dump.dump.engines.postgres import PostgresStrategy
from docker_db_dump.errors import (BackupError, DetectionError,
                                   DumpExecutionError, WriteError)
from docker_db_dump.utils.datatypes import Container

# order matters: mariadb images also ship mysqldump
STRATEGIES: Sequence[DumpStrategy] = (MariaDBStrategy(), MySQLStrategy(), PostgresStrategy())


@dataclass(frozen=True)
class DumpResult:
    """
    Result of a dump. error is None on success.
    """
    engine: Optional[str] = None
    bytes_written: int = 0
    error: Optional[BackupError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DumpEngine:
    """
    Runs the dump utility of the detected engine inside a container.
    """

    def __init__(self, client, strategies: Sequence[DumpStrategy] = STRATEGIES,
                 stderr_lines: int = 5):
        """
        :param client: docker client, see containers.client.Client
        :param strategies: engines in the order they are probed
        :param stderr_lines: lines of stderr kept for the error message
        """
        self._client = client
        self._strategies = strategies
        self._stderr_lines = stderr_lines

    def detect(self, container: Container) -> DumpStrategy:
        """
        Get the first engine whose dump utility exists in the container.
        """
        for strategy in self._strategies:
            if strategy.matches(self._client, container):
                logger.debug(f'{container}: detected {strategy}')
                return strategy
        raise DetectionError(
            f'{container}: no supported dump utility found '
            f'({", ".join(x.tool for x in self._strategies)})')

    def dump(self, container: Container, sink: BinaryIO) -> DumpResult:
        """
        Dump all databases of the container into the sink.
        Errors are returned, never raised.
        :param container: running container
        :param sink: binary stream receiving the SQL statements
        :return: result of the dump
        """
        try:
            strategy = self.detect(container)
            command = strategy.command(container)
        except BackupError as e:
            return DumpResult(error=e)
        except (DockerException, RequestException) as e:
            return DumpResult(error=DetectionError(f'{container}: probing failed: {e}'))

        logger.info(f'Dumping {strategy} databases of {container}')
        written = 0
        stderr = deque(maxlen=self._stderr_lines)
        try:
            stream = self._client.exec_stream(container, command, user=strategy.user)
            try:
                for out, err in stream:
                    if out:
                        try:
                            sink.write(out)
                        except OSError as e:
                            raise WriteError(f'{container}: writing the dump failed: {e}') from e
                        written += len(out)
                    if err:
                        for line in err.decode(errors='replace').splitlines():
                            logger.debug(f'{container}: {line}')
                            stderr.append(line)
            finally:
                stream.close()
            exit_code = stream.exit_code()
        except WriteError as e:
            return DumpResult(strategy.name, written, e)
        # lost connection to the daemon: RequestException and socket errors are OSErrors
        except (DockerException, OSError) as e:
            return DumpResult(strategy.name, written,
                              DumpExecutionError(f'{container}: {strategy.tool} failed: {e}'))

        details = f': {" | ".join(stderr)}' if stderr else ''
        if exit_code is None:
            return DumpResult(strategy.name, written, DumpExecutionError(
                f'{container}: {strategy.tool} did not report an exit code{details}'))
        if exit_code != 0:
            return DumpResult(strategy.name, written, DumpExecutionError(
                f'{container}: {strategy.tool} exited with {exit_code}{details}'))
        if written == 0:
            return DumpResult(strategy.name, written, DumpExecutionError(
                f'{container}: {strategy.tool} produced no output{details}'))
        logger.debug(f'{container}: {written} bytes dumped')
        return DumpResult(strategy.name, written)
