from pathlib import Path

import pytest
from loguru import logger


@pytest.fixture
def tmpdir(tmpdir) -> Path:
    return Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # the cli replaces all sinks, the next test must not write to a closed capture
    logger.remove()


@pytest.fixture
def logs() -> list:
    """
    (level, message) of every log message emitted during the test.
    """
    messages = []
    handler_id = logger.add(
        lambda message: messages.append((message.record['level'].name,
                                         message.record['message'])),
        level='DEBUG',
    )
    yield messages
    logger.remove(handler_id)
