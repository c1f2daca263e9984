"""
Compressors available on the host and the consumers that run them.
"""
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Thread
from typing import BinaryIO, Callable, Optional, Sequence, Tuple

from loguru import logger


class Consumer(ABC):
    """
    Reads the dump from the channel and writes it to the archive.
    """

    @abstractmethod
    def join(self) -> Optional[str]:
        """
        Wait until the channel is drained.
        :return: error message or None on success
        """
        pass

    @abstractmethod
    def kill(self) -> None:
        """
        Stop the consumer. Only called after the channel has been closed.
        """
        pass


class ProcessConsumer(Consumer):
    """
    Pipes the channel through a compressor process.
    """

    def __init__(self, command: Sequence[str], source: int, target: BinaryIO):
        """
        :param command: compressor reading stdin and writing stdout
        :param source: read end of the channel. Owned by the consumer.
        :param target: archive file
        """
        self._command = command
        try:
            self._process = subprocess.Popen(
                list(command), stdin=source, stdout=target, stderr=subprocess.PIPE)
        finally:
            # the process holds its own copy. Keeping ours would block the
            # producer forever if the compressor dies.
            os.close(source)

    def join(self) -> Optional[str]:
        _, stderr = self._process.communicate()
        if self._process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            return f'{self._command[0]} exited with {self._process.returncode}: {message}'
        return None

    def kill(self) -> None:
        if self._process.poll() is None:
            self._process.kill()
        self._process.communicate()


class CopyConsumer(Consumer):
    """
    Copies the channel to the archive without compression.
    """

    def __init__(self, source: int, target: BinaryIO, chunk_size: int = 1 << 16):
        self._error: Optional[str] = None
        self._thread = Thread(target=self._copy, args=(source, target, chunk_size),
                              name='archive-copy', daemon=True)
        self._thread.start()

    def _copy(self, source: int, target: BinaryIO, chunk_size: int):
        try:
            with open(source, 'rb', closefd=True) as reader:
                shutil.copyfileobj(reader, target, chunk_size)
            target.flush()
        # ValueError: the archive was closed under us
        except (OSError, ValueError) as e:
            self._error = str(e)

    def join(self) -> Optional[str]:
        self._thread.join()
        return self._error

    def kill(self) -> None:
        # ends on its own once the channel is closed
        self._thread.join()


@dataclass(frozen=True)
class Compressor:
    """
    Host utility that compresses stdin to stdout.
    A compressor without a command stores the plain dump.
    """
    name: str
    extension: Optional[str] = None
    command: Tuple[str, ...] = ()

    def __str__(self):
        return self.name

    def available(self, which: Callable[[str], Optional[str]] = shutil.which) -> bool:
        return not self.command or which(self.command[0]) is not None

    def spawn(self, source: int, target: BinaryIO) -> Consumer:
        """
        Start consuming the channel.
        :param source: read end of the channel. Ownership passes to the consumer.
        :param target: archive file opened for binary writing
        """
        if self.command:
            return ProcessConsumer(self.command, source, target)
        return CopyConsumer(source, target)


PASS_THROUGH = Compressor('none')

# best ratio first
COMPRESSORS: Sequence[Compressor] = (
    Compressor('zstd', 'zst', ('zstd', '-q', '-c')),
    Compressor('gzip', 'gz', ('gzip', '-c')),
    Compressor('zip', 'zip', ('zip', '-q', '-', '-')),
    PASS_THROUGH,
)


def select_compressor(candidates: Sequence[Compressor] = COMPRESSORS,
                      which: Callable[[str], Optional[str]] = shutil.which) -> Compressor:
    """
    Get the first available compressor.
    Falls back to storing plain SQL.
    """
    for compressor in candidates:
        if compressor.available(which):
            logger.debug(f'Using compressor {compressor}')
            return compressor
    logger.warning('No compressor found. Storing plain SQL dumps.')
    return PASS_THROUGH
