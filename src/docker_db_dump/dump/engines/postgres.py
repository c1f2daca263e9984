from typing import List

from docker_db_dump.dump.engines.base import DumpStrategy
from docker_db_dump.errors import ConfigurationError
from docker_db_dump.utils.datatypes import Container


class PostgresStrategy(DumpStrategy):
    """
    Dumps the whole PostgreSQL cluster with pg_dumpall.
    Connects with the role from POSTGRES_USER.
    """
    name = 'PostgreSQL'
    tool = 'pg_dumpall'

    def command(self, container: Container) -> List[str]:
        role = container.env.get('POSTGRES_USER')
        if not role:
            raise ConfigurationError(
                f'{container}: POSTGRES_USER is not set. Cannot select the role for the dump.')
        return [self.tool, f'--username={role}']
