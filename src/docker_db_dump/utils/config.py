"""
config handling for dynaconf
"""
from importlib.resources import files
from pathlib import Path
from typing import Iterable, List, Optional

from dynaconf import Dynaconf, ValidationError, Validator
from loguru import logger

from docker_db_dump.errors import ConfigurationError
from docker_db_dump.utils.datatypes import SelectionConfig, Settings


def parse_config(config_folder: Optional[Path] = None) -> Dynaconf:
    """
    Parse config with dynaconf.
    Without a config folder only the shipped defaults and the environment
    (DB_DUMP_ prefix) are read. A config folder gets a copy of the defaults on
    first use, config.toml in it overrides them.
    :param config_folder: folder holding default.toml and config.toml
    :return: settings
    """
    shipped_config = files('docker_db_dump.data').joinpath('default.toml')
    if config_folder:
        config_folder = Path(config_folder)
        default_config = config_folder / 'default.toml'
        if not default_config.is_file():
            try:
                config_folder.mkdir(parents=True, exist_ok=True)
                default_config.write_text(shipped_config.read_text(), encoding='utf-8')
            except OSError as e:
                raise ConfigurationError(
                    f'Failed to create default config {default_config}. '
                    'Consider creating the folder writeable for this user '
                    f'or choose a different path. Error: {e}') from e
            logger.info(f'Created default config {default_config}')
        settings_files = ['default.toml', 'config.toml']
        root_path = str(config_folder)
    else:
        settings_files = [str(shipped_config)]
        root_path = None

    return Dynaconf(
        envvar_prefix='DB_DUMP',
        settings_files=settings_files,
        root_path=root_path,
        merge_enabled=True,
        validators=[
            Validator('containers.required', 'containers.skip',
                      'heartbeat.success', 'heartbeat.failure', 'heartbeat.always',
                      is_type_of=list, default=[]),
            Validator('backup.dir', must_exist=True, is_type_of=str, len_min=1),
            Validator('backup.keep', cast=int, default=4),
            Validator('heartbeat.timeout', cast=float, gt=0, default=10.0),
            Validator('logging.verbose', cast=bool, default=False),
            Validator('logging.level', default='INFO'),
        ]
    )


def _merge(configured: Optional[Iterable[str]], given: Iterable[str]) -> List[str]:
    return [str(x) for x in (configured or [])] + list(given)


def load_settings(config_folder: Optional[Path] = None,
                  required: Iterable[str] = (),
                  skip: Iterable[str] = (),
                  backup_dir: Optional[Path] = None,
                  keep: Optional[int] = None,
                  success_urls: Iterable[str] = (),
                  failure_urls: Iterable[str] = (),
                  always_urls: Iterable[str] = (),
                  verbose: bool = False) -> Settings:
    """
    Build the settings of a run from the config and the command line.
    Lists given on the command line extend the configured ones, single values
    replace them.
    Raises ConfigurationError if the config is invalid or no container is configured.
    :return: settings
    """
    try:
        config = parse_config(config_folder)
        config.validators.validate()
        log_dir = config('logging.dir', default='')
        settings = Settings(
            selection=SelectionConfig(
                required=tuple(_merge(config('containers.required'), required)),
                skip=frozenset(_merge(config('containers.skip'), skip)),
            ),
            backup_dir=Path(backup_dir or config('backup.dir')).absolute(),
            keep=keep if keep is not None else config('backup.keep', cast=int),
            success_urls=tuple(_merge(config('heartbeat.success'), success_urls)),
            failure_urls=tuple(_merge(config('heartbeat.failure'), failure_urls)),
            always_urls=tuple(_merge(config('heartbeat.always'), always_urls)),
            heartbeat_timeout=config('heartbeat.timeout', cast=float),
            verbose=verbose or config('logging.verbose', cast=bool),
            log_dir=Path(log_dir) if log_dir else None,
            log_level=str(config('logging.level')).upper(),
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise ConfigurationError(f'Invalid configuration: {e}') from e

    if not settings.selection.required:
        raise ConfigurationError('No containers configured. Nothing to back up.')
    return settings
