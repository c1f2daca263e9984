"""
Writes dumps to disk. An archive only appears at its final path once the
dump succeeded.
"""
import os
from pathlib import Path
from typing import Optional

from loguru import logger

from docker_db_dump.dump.engine import DumpEngine
from docker_db_dump.errors import WriteError
from docker_db_dump.storage.compressors import Compressor, select_compressor
from docker_db_dump.utils.converters import PART_SUFFIX
from docker_db_dump.utils.datatypes import BackupTask


def partial_path(target: Path) -> Path:
    """
    Temporary file of the given archive.
    """
    return target.with_name(target.name + PART_SUFFIX)


class Channel:
    """
    Pipe between the dump producer and the consumer.
    """

    def __init__(self):
        self._reader: Optional[int]
        self._reader, writer = os.pipe()
        self.writer = os.fdopen(writer, 'wb')

    def take_reader(self) -> int:
        """
        Hand the read end over to the consumer.
        """
        reader, self._reader = self._reader, None
        return reader

    def close(self) -> Optional[OSError]:
        """
        Close both ends. The consumer sees the end of the dump.
        :return: error while flushing the last bytes
        """
        error = None
        if not self.writer.closed:
            try:
                self.writer.close()
            except OSError as e:
                error = e
        if self._reader is not None:
            os.close(self._reader)
            self._reader = None
        return error


class ArchiveWriter:
    """
    Streams the dump of a task through a compressor into its archive.
    """

    def __init__(self, engine: DumpEngine, compressor: Optional[Compressor] = None):
        """
        :param engine: dump engine producing the SQL
        :param compressor: compressor to use. The best available one by default.
        """
        self.engine = engine
        self.compressor = compressor if compressor else select_compressor()

    def write(self, task: BackupTask) -> Path:
        """
        Dump the container of the task and commit the archive.
        Raises a BackupError if the dump or the archive failed. Nothing is left
        on disk in that case.
        :param task: backup task
        :return: path of the archive
        """
        target = task.path(self.compressor.extension)
        part = partial_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f'{task.container}: cannot create {target.parent}: {e}') from e

        committed = False
        try:
            with open(part, 'wb') as out:
                channel = Channel()
                consumer = None
                try:
                    # the consumer has to read before the dump starts writing
                    consumer = self.compressor.spawn(channel.take_reader(), out)
                    result = self.engine.dump(task.container, channel.writer)
                    flush_error = channel.close()
                    consumer_error = consumer.join()
                    consumer = None
                finally:
                    # stop the consumer before the archive file is closed
                    channel.close()
                    if consumer:
                        consumer.kill()
            if not result.ok:
                raise result.error
            if flush_error:
                raise WriteError(f'{task.container}: writing the dump failed: {flush_error}')
            if consumer_error:
                raise WriteError(f'{task.container}: {self.compressor} failed: {consumer_error}')
            size = part.stat().st_size
            os.replace(part, target)
            committed = True
        except OSError as e:
            raise WriteError(f'{task.container}: writing {part} failed: {e}') from e
        finally:
            if not committed:
                part.unlink(missing_ok=True)
        logger.info(f'{task.container}: archive written to {target} ({size} bytes)')
        return target
