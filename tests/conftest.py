import os
from collections.abc import Generator

import pytest

# Keep test runs offline: no Sentry capture, no Redis, no author system.
os.environ["SENTRY_DSN"] = ""
os.environ["REDIS_URL"] = ""
os.environ["AEM_AUTHOR_URL"] = ""
os.environ["AEM_AUTHOR_TOKEN"] = ""

from audit_engine.core import metrics


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    metrics.reset()
    yield
    metrics.reset()
