# pylint: disable=redefined-outer-name
import time

import pytest
import redis
import requests
from tenacity import retry, stop_after_delay

from config import get_api_url, get_redis_host_and_port

pytest.register_assert_rewrite("tests.e2e.api_client")


@retry(stop=stop_after_delay(60))
def wait_for_webapp_to_come_up():
    return requests.get(f"{get_api_url()}/health", timeout=1)


@retry(stop=stop_after_delay(30))
def wait_for_redis_to_come_up():
    r = redis.Redis(**get_redis_host_and_port())
    return r.ping()


@pytest.fixture
def restart_api():
    wait_for_webapp_to_come_up()
    time.sleep(0.5)


@pytest.fixture
def redis_client():
    wait_for_redis_to_come_up()
    return redis.Redis(**get_redis_host_and_port())


@pytest.fixture
def sqlite_session_factory():
    """Create SQLite in-memory database for fast testing."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker, clear_mappers
    from sqlalchemy.pool import StaticPool
    from tracking.adapters import orm

    # one shared connection so every thread (TestClient, lock tests) sees the same database
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.metadata.create_all(engine)
    orm.start_mappers()

    yield sessionmaker(bind=engine, expire_on_commit=False)

    clear_mappers()
    engine.dispose()


@pytest.fixture
def sqlite_uow(sqlite_session_factory):
    from tracking.service_layer.unit_of_work import SqlAlchemyUnitOfWork

    return SqlAlchemyUnitOfWork(session_factory=sqlite_session_factory)
