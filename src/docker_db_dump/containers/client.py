"""
Docker client / container inventory / command execution inside containers
"""
import shlex
import time
from typing import Iterator, List, Optional, Sequence, Tuple

from docker import DockerClient
from docker.models.containers import Container as DockerContainer
from loguru import logger

from docker_db_dump.utils.converters import parse_env
from docker_db_dump.utils.datatypes import Container


class ExecStream:
    """
    Output of a command running inside a container.
    Iterating yields (stdout, stderr) chunks. Either of them may be None.
    """

    def __init__(self, client: DockerClient, exec_id: str, output):
        self._client = client
        self._exec_id = exec_id
        self._output = output

    def __iter__(self) -> Iterator[Tuple[Optional[bytes], Optional[bytes]]]:
        return iter(self._output)

    def close(self):
        """
        Drop the connection to the daemon. Stops reading the output.
        """
        close = getattr(self._output, 'close', None)
        if close:
            close()

    def exit_code(self, attempts: int = 50, interval: float = 0.1) -> Optional[int]:
        """
        Exit code of the command. The daemon may report it shortly after the
        output stream has ended, so the exec is polled for a while.
        :return: exit code or None if the command is still running.
        """
        for _ in range(attempts):
            info = self._client.api.exec_inspect(self._exec_id)
            if not info.get('Running') and info.get('ExitCode') is not None:
                return info['ExitCode']
            time.sleep(interval)
        return None


class Client:
    """
    Docker client. Talks to the daemon configured in the environment.
    """

    def __init__(self, docker_client: Optional[DockerClient] = None):
        """
        :param docker_client: connected client. from_env() by default.
        """
        self._client_socket: Optional[DockerClient] = docker_client

    @property
    def client(self) -> DockerClient:
        """
        Open a new connection to the docker daemon.
        :return: docker client
        """
        if not self._client_socket:
            logger.debug('Connecting to the docker daemon...')
            self._client_socket = DockerClient.from_env()
        return self._client_socket

    @staticmethod
    def _snapshot(container: DockerContainer) -> Container:
        config = container.attrs.get('Config') or {}
        return Container(
            id=container.id,
            name=container.name,
            image=config.get('Image') or '',
            status=container.status,
            env=parse_env(config.get('Env')),
        )

    def list_containers(self) -> List[Container]:
        """
        Get all containers, stopped ones included.
        :return: snapshot of every container
        """
        containers = [self._snapshot(x) for x in self.client.containers.list(all=True)]
        logger.debug(f'Found {len(containers)} containers')
        return containers

    def has_command(self, container: Container, command: str) -> bool:
        """
        Check whether the given executable is on the PATH of the container.
        """
        result = self.client.containers.get(container.id).exec_run(
            ['sh', '-c', f'command -v {shlex.quote(command)}'],
            stdout=True, stderr=False,
        )
        found = result.exit_code == 0
        logger.debug(f'{container}: {command} {"found" if found else "not found"}')
        return found

    def exec_stream(self, container: Container, command: Sequence[str],
                    user: str = '') -> ExecStream:
        """
        Run the command inside the container and stream its output.
        :param container: running container
        :param command: argv of the command
        :param user: user to run the command as. Default user of the image if empty.
        :return: stream of the output, the exit code is available after it ended.
        """
        exec_id = self.client.api.exec_create(
            container.id, list(command), stdout=True, stderr=True, user=user,
        )['Id']
        output = self.client.api.exec_start(exec_id, stream=True, demux=True)
        return ExecStream(self.client, exec_id, output)
