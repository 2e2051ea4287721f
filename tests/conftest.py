import logging

import pytest


@pytest.fixture(autouse=True)
def reset_cronwell_logger():
    yield
    logger = logging.getLogger("cronwell")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
