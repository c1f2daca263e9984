from abc import ABC, abstractmethod
from typing import List

from docker_db_dump.utils.datatypes import Container


class DumpStrategy(ABC):
    """
    ABC for database engines.
    Implements how to detect an engine inside a container and how to dump it.
    """

    #: name of the engine for messages
    name: str = ''
    #: dump utility that identifies the engine
    tool: str = ''
    #: user that runs the dump. Default user of the image if empty.
    user: str = ''

    def __str__(self):
        return self.name

    def matches(self, client, container: Container) -> bool:
        """
        Check whether the container provides the dump utility of this engine.
        :param client: docker client used to probe the container
        :param container: running container
        """
        return client.has_command(container, self.tool)

    @abstractmethod
    def command(self, container: Container) -> List[str]:
        """
        Returns the argv that dumps all databases to stdout.
        Raises ConfigurationError if the credentials are missing.
        :param container: container with the engine
        """
        pass
