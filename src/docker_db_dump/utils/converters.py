"""
helpers for converting values from one format to a different one
"""
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

DATE_FORMAT = '%Y-%m-%d'
TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S'

ARCHIVE_SUFFIX = '.sql'
PART_SUFFIX = '.part'

_FILE_NAME_RE = re.compile(
    r'^(?P<container>.+)-(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})'
    r'\.sql(?:\.(?P<extension>[a-z0-9]+))?$'
)


def parse_timestamp(timestamp: str) -> datetime:
    """
    Convert the given timestamp string to a datetime object.
    Format: TIMESTAMP_FORMAT
    :param timestamp: timestamp to parse
    :return: parsed timestamp
    """
    return datetime.strptime(timestamp, TIMESTAMP_FORMAT)


def format_timestamp(timestamp: datetime) -> str:
    """
    Convert the given datetime object to the archive timestamp.
    :param timestamp: datetime object
    :return: formatted time with second resolution
    """
    return timestamp.strftime(TIMESTAMP_FORMAT)


def format_date(timestamp: datetime) -> str:
    return timestamp.strftime(DATE_FORMAT)


def parse_file_name(file_path: str or Path) -> dict:
    """
    Parse the given archive file name.
    <container>-<YYYY-MM-DDTHH:MM:SS>.sql[.ext]
    :param file_path: path or name of the archive
    :return: Dictionary with keys: container, timestamp, extension, path
    """
    match = _FILE_NAME_RE.match(Path(file_path).name)
    if not match:
        raise ValueError(f'Invalid file name: {file_path}')
    return {
        'container': match.group('container'),
        'timestamp': parse_timestamp(match.group('timestamp')),
        'extension': match.group('extension'),
        'path': Path(file_path),
    }


def parse_env(env: Optional[Iterable[str]]) -> Dict[str, str]:
    """
    Convert the KEY=VALUE list of a container config to a dict.
    Entries without a "=" are set but empty.
    """
    result = {}
    for entry in env or []:
        key, _, value = entry.partition('=')
        result[key] = value
    return result
