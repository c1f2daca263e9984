import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

STDERR_FORMAT = ('<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
                 '<level>{level: <8}</level> | <level>{message}</level>')


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None,
                  log_level: str = 'INFO'):
    logger.remove()
    logger.add(sys.stderr,
               format=STDERR_FORMAT,
               level='DEBUG' if verbose else 'INFO',
               backtrace=False,
               diagnose=False)
    if not log_dir:
        return
    if not os.path.isdir(log_dir):
        os.makedirs(log_dir, exist_ok=True)
    format_string = '{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}'
    # no diagnose: the variables of a frame may contain database passwords
    logger.add(Path(log_dir) / 'docker-db-dump.log',
               format=format_string,
               rotation='00:00',
               retention='14 days',
               level=log_level,
               backtrace=True,
               diagnose=False)
