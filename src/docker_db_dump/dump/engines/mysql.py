from typing import List, Tuple

from docker_db_dump.dump.engines.base import DumpStrategy
from docker_db_dump.errors import ConfigurationError
from docker_db_dump.utils.datatypes import Container


class MySQLStrategy(DumpStrategy):
    """
    Dumps all databases of MySQL as root with mysqldump.
    """
    name = 'MySQL'
    tool = 'mysqldump'
    password_variables: Tuple[str, ...] = ('MYSQL_ROOT_PASSWORD',)

    def password_variable(self, container: Container) -> str:
        """
        First password variable set in the container.
        """
        for variable in self.password_variables:
            if container.env.get(variable):
                return variable
        raise ConfigurationError(
            f'{container}: {" or ".join(self.password_variables)} is not set. '
            f'Cannot dump {self.name} as root.')

    def command(self, container: Container) -> List[str]:
        variable = self.password_variable(container)
        # expanded by the shell of the container, never visible on the host
        return [
            'sh', '-c',
            f'exec {self.tool} --all-databases --single-transaction '
            f'--user=root --password="${variable}"'
        ]


class MariaDBStrategy(MySQLStrategy):
    """
    Dumps all databases of MariaDB as root with mariadb-dump.
    """
    name = 'MariaDB'
    tool = 'mariadb-dump'
    password_variables = ('MYSQL_ROOT_PASSWORD', 'MARIADB_ROOT_PASSWORD')
