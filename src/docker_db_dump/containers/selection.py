"""
Selects the database containers to back up.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from loguru import logger

from docker_db_dump.utils.datatypes import Container, SelectionConfig

SUPPORTED_IMAGES = ('mysql', 'mariadb', 'postgres')


@dataclass
class Selection:
    """
    Containers to back up plus the number of selection errors.
    """
    containers: List[Container] = field(default_factory=list)
    errors: int = 0


def is_database_image(image: str) -> bool:
    """
    Check whether the image reference belongs to a supported database.
    :param image: e.g. postgres:16 or docker.io/library/mariadb:11
    """
    image = image.lower()
    return any(x in image for x in SUPPORTED_IMAGES)


def select_containers(inventory: Iterable[Container], config: SelectionConfig) -> Selection:
    """
    Build the work list.
    Database containers that are skipped are ignored silently, those that are
    neither required nor skipped are only warned about.
    Every required container that is missing or not running is an error.
    :param inventory: all containers of the host
    :param config: required and skipped container names
    :return: running required containers in the order of config.required
    """
    matches: Dict[str, Container] = {}
    for container in inventory:
        if not is_database_image(container.image):
            continue
        if container.name in config.skip:
            logger.debug(f'{container} is ignored. Skipping.')
            continue
        if container.name not in config.required_set:
            logger.warning(f'{container} is not configured. Skipping.')
            continue
        matches[container.name] = container

    selection = Selection()
    for name in config.required:
        container = matches.get(name)
        if container is None:
            logger.error(f'{name} not found')
            selection.errors += 1
            continue
        if not container.is_running:
            logger.error(f'{name} is {container.status}. Skipping backup.')
            selection.errors += 1
            continue
        logger.debug(f'{name} found')
        selection.containers.append(container)
    return selection
