from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from docker_db_dump.utils.datatypes import Container

__all__ = [
    'FakeClient',
    'FakeExecStream',
    'make_container',
    'ticking_clock',
    'write_archive',
]


def make_container(name: str, image: str = 'postgres:16', status: str = 'running',
                   **env: str) -> Container:
    return Container(id=f'id-{name}', name=name, image=image, status=status, env=env)


def ticking_clock(start: datetime = datetime(2026, 10, 19, 3, 0, 0)) -> Callable[[], datetime]:
    """Clock advancing one second per call."""

    current = [start - timedelta(seconds=1)]

    def clock() -> datetime:
        current[0] += timedelta(seconds=1)
        return current[0]

    return clock


def write_archive(backup_dir: Path, container: str, timestamp: datetime,
                  extension: Optional[str] = None, content: bytes = b'-- old\n') -> Path:
    suffix = '.sql' + (f'.{extension}' if extension else '')
    path = (backup_dir / container / timestamp.strftime('%Y-%m-%d')
            / f'{container}-{timestamp.strftime("%Y-%m-%dT%H:%M:%S")}{suffix}')
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class FakeExecStream:
    """Stands in for containers.client.ExecStream."""

    def __init__(self, chunks: Iterable, exit_code: Optional[int] = 0,
                 on_chunk: Optional[Callable[[], None]] = None) -> None:
        self._chunks = chunks
        self._exit_code = exit_code
        self._on_chunk = on_chunk
        self.closed = False

    def __iter__(self):
        for chunk in self._chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            if self._on_chunk:
                self._on_chunk()
            yield chunk

    def close(self) -> None:
        self.closed = True

    def exit_code(self) -> Optional[int]:
        return self._exit_code


class FakeClient:
    """Container runtime with scripted containers, tools and dump outputs."""

    def __init__(self, containers: Sequence[Container] = (),
                 tools: Optional[Dict[str, Iterable[str]]] = None,
                 dumps: Optional[Dict[str, Tuple[list, int]]] = None,
                 on_chunk: Optional[Callable[[], None]] = None,
                 inventory_error: Optional[Exception] = None) -> None:
        self.containers = list(containers)
        self.tools = {name: set(x) for name, x in (tools or {}).items()}
        self.dumps = dumps or {}
        self.on_chunk = on_chunk
        self.inventory_error = inventory_error
        self.commands: List[Tuple[str, List[str], str]] = []
        self.streams: List[FakeExecStream] = []

    def list_containers(self) -> List[Container]:
        if self.inventory_error:
            raise self.inventory_error
        return list(self.containers)

    def has_command(self, container: Container, command: str) -> bool:
        return command in self.tools.get(container.name, set())

    def exec_stream(self, container: Container, command: Sequence[str],
                    user: str = '') -> FakeExecStream:
        self.commands.append((container.name, list(command), user))
        chunks, exit_code = self.dumps.get(
            container.name, ([(b'-- dump of ' + container.name.encode() + b'\n', None)], 0))
        stream = FakeExecStream(chunks, exit_code, self.on_chunk)
        self.streams.append(stream)
        return stream
