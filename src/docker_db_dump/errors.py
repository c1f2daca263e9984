"""
Exceptions raised while backing up database containers.
"""


class BackupError(Exception):
    """
    Base class for all errors of a backup run.
    """


class ConfigurationError(BackupError):
    """
    Invalid invocation or settings. Missing credentials of a single container
    are reported with this error as well.
    """


class DetectionError(BackupError):
    """
    No supported dump utility was found inside a container.
    """


class DumpExecutionError(BackupError):
    """
    The dump utility ran but exited with an error or produced no output.
    """


class WriteError(BackupError):
    """
    Staging or committing an archive on disk failed.
    """


class PruneError(BackupError):
    """
    Removing old archives or leftovers failed. Never fails the run.
    """


class NotificationError(BackupError):
    """
    A heartbeat could not be delivered.
    """
