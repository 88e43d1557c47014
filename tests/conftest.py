from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from student_api.api.deps import get_pool_manager
from student_api.core.pool import PoolManager
from student_api.main import app
from tests.utils.fakes import SEEDED_STUDENTS, FakeConnector, FakeTokenProvider, make_config


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector(rows=SEEDED_STUDENTS)


@pytest.fixture
def pool(token_provider: FakeTokenProvider, connector: FakeConnector) -> PoolManager:
    return PoolManager(
        make_config(), token_provider=token_provider, connect_fn=connector
    )


@pytest.fixture
def client(pool: PoolManager) -> Generator[TestClient, None, None]:
    # No lifespan: the real PoolManager (and boto3) is never built in tests.
    app.dependency_overrides[get_pool_manager] = lambda: pool
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
