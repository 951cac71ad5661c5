"""
Shared fixtures: a fresh SQLite file per test, an app built around it,
and a way to run store coroutines without an async test plugin.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.db import create_tables, make_engine, make_session_factory
from app.main import create_app
from app.store import MappingStore

ADMIN_TOKEN = "secret123"
FALLBACK_URL = "https://fallback.example/"
CRAWLER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4450.0 Safari/537.36"
)
BROWSER_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(
        database_url=database_url,
        admin_token=ADMIN_TOKEN,
        fallback_url=FALLBACK_URL,
        db_connect_attempts=1,
        shutdown_grace_seconds=1.0,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings), follow_redirects=False) as c:
        yield c


@pytest.fixture
def auth():
    return {"Authorization": ADMIN_TOKEN}


@pytest.fixture
def drain(client):
    """Block until every detached task spawned by the app has finished."""
    def _drain():
        client.portal.call(client.app.state.tasks.drain)
    return _drain


@pytest.fixture
def run_with_store(database_url):
    def run(scenario):
        async def main():
            engine = make_engine(database_url)
            await create_tables(engine)
            try:
                return await scenario(MappingStore(make_session_factory(engine)))
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return run


def mapping_payload(**overrides):
    payload = {
        "path": "/x",
        "title": "T",
        "body": "B",
        "icon": "/i.png",
        "redirect": "https://dest.example",
    }
    payload.update(overrides)
    return payload
