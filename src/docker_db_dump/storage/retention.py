"""
Retention of archives on local disk.
"""
import os
from pathlib import Path
from typing import List

from loguru import logger

from docker_db_dump.errors import PruneError
from docker_db_dump.utils.converters import PART_SUFFIX, parse_file_name


class ArchiveStore:
    """
    Archives below the backup dir.
    Layout: {backup_dir}/{container}/{date}/{container}-{timestamp}.sql[.ext]
    """

    def __init__(self, backup_dir: Path):
        """
        :param backup_dir: main dir for backups
        """
        self.backup_dir = Path(backup_dir)

    def container_dir(self, container_name: str) -> Path:
        return self.backup_dir / container_name

    def get_existing_archives(self, container_name: str) -> List[Path]:
        """
        Get all committed archives of a container.
        :return: archives sorted by name, which is their creation order.
        """
        container_dir = self.container_dir(container_name)
        if not container_dir.is_dir():
            return []
        archives = []
        for file in container_dir.glob('*/*'):
            if not file.is_file():
                continue
            try:
                data = parse_file_name(file)
            except ValueError:
                # .part files and anything else we did not write
                continue
            if data['container'] == container_name:
                archives.append(file)
        return sorted(archives, key=lambda x: x.name)

    def remove(self, path: Path) -> None:
        try:
            os.remove(path)
        except OSError as e:
            raise PruneError(f'Could not delete {path}: {e}') from e

    def remove_partial_files(self) -> List[Path]:
        """
        Delete temporary files left by interrupted runs anywhere below the backup dir.
        :return: removed files
        """
        removed = []
        if not self.backup_dir.is_dir():
            return removed
        for file in sorted(self.backup_dir.rglob(f'*{PART_SUFFIX}')):
            if not file.is_file():
                continue
            try:
                self.remove(file)
            except PruneError as e:
                logger.error(str(e))
                continue
            logger.warning(f'Removed leftover {file}')
            removed.append(file)
        return removed

    def remove_empty_dirs(self, container_name: str) -> List[Path]:
        """
        Delete date folders of the container without any file.
        :return: removed folders
        """
        removed = []
        container_dir = self.container_dir(container_name)
        if not container_dir.is_dir():
            return removed
        for folder in sorted(container_dir.iterdir()):
            if not folder.is_dir() or any(folder.iterdir()):
                continue
            try:
                folder.rmdir()
            except OSError as e:
                logger.error(f'Could not delete {folder}: {e}')
                continue
            logger.debug(f'Removed empty folder {folder}')
            removed.append(folder)
        return removed


def prune_archives(store: ArchiveStore, container_name: str, keep: int) -> List[Path]:
    """
    Remove old archives of a container.
    Keeps the newest keep archives. keep <= 0 disables the deletion of
    archives, leftovers of interrupted runs and empty date folders are
    removed anyways.
    Errors are logged and never raised.
    :param store: archive store
    :param container_name: container whose archives are pruned
    :param keep: number of archives to keep
    :return: removed archives
    """
    removed = []
    try:
        store.remove_partial_files()
        if keep and keep > 0:
            archives = store.get_existing_archives(container_name)
            for archive in archives[:-keep]:
                try:
                    store.remove(archive)
                except PruneError as e:
                    logger.error(str(e))
                    continue
                logger.info(f'Deleted an old archive: {archive} (Max {keep} archives)')
                removed.append(archive)
        store.remove_empty_dirs(container_name)
    except OSError as e:
        logger.error(f'Pruning the archives of {container_name} failed: {e}')
    return removed
