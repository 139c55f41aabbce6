"""Test configuration and fixtures."""

from datetime import datetime
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from ana_hub.api import app
from ana_hub.config import Settings
from ana_hub.db.base import Base, create_db_engine, get_db
from ana_hub.db.services import BoardService
from ana_hub.sync.relay import GitHubRelay

SEED_BOARDS = [
    ["Wealth Analytica", "wealth-analytica", "Board for Wealth Analytica company"],
    ["BAV Futures", "bav-futures", "Board for BAV Futures"],
    ["Prostate Cancer", "prostate-cancer", "Board for Prostate Cancer UK"],
]


@pytest.fixture
def engine():
    """Fresh in-memory database with the default boards seeded."""
    from ana_hub.db import models  # noqa: F401

    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    try:
        BoardService(db).seed_if_empty(SEED_BOARDS)
    finally:
        db.close()
    return factory


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def override_db(session_factory) -> Generator[None, None, None]:
    """Point the app's get_db dependency at the test database."""

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def client(override_db) -> TestClient:
    """TestClient; its peer address is 'testclient', i.e. not loopback."""
    return TestClient(app)


@pytest_asyncio.fixture
async def local_client(override_db):
    """Async client whose peer address is 127.0.0.1."""
    transport = httpx.ASGITransport(app=app, client=("127.0.0.1", 50123))
    async with httpx.AsyncClient(transport=transport, base_url="http://127.0.0.1") as c:
        yield c


def make_event(event_type: str, data: Dict[str, Any], **overrides) -> Dict[str, Any]:
    """Build an event payload with optional overrides."""
    payload = {
        "type": event_type,
        "timestamp": "2024-01-01T00:00:00Z",
        "source": "relay",
        "data": data,
    }
    payload.update(overrides)
    return payload


class FakeGitHub:
    """In-memory stand-in for the GitHub issues API."""

    def __init__(self, owner: str = "acme", repo: str = "hub-sync"):
        self.owner = owner
        self.repo = repo
        self.issues: Dict[int, Dict[str, Any]] = {}
        self.fail_close: set = set()
        self.fail_list = False
        self.requests: List[httpx.Request] = []
        self._clock = 0

    def add_issue(
        self,
        body: Optional[str],
        labels: Optional[List[str]] = None,
        pull_request: bool = False,
    ) -> int:
        number = len(self.issues) + 1
        self._clock += 1
        issue = {
            "number": number,
            "state": "open",
            "body": body,
            "labels": [{"name": name} for name in (labels or ["type:sync"])],
            "updated_at": f"2024-01-01T00:00:{self._clock:02d}Z",
        }
        if pull_request:
            issue["pull_request"] = {"url": "https://example.invalid/pr"}
        self.issues[number] = issue
        return number

    def is_open(self, number: int) -> bool:
        return self.issues[number]["state"] == "open"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        base = f"/repos/{self.owner}/{self.repo}/issues"

        if request.method == "GET" and request.url.path == base:
            if self.fail_list:
                return httpx.Response(502, json={"message": "Bad Gateway"})
            label = request.url.params.get("labels")
            state = request.url.params.get("state")
            listed = [
                issue
                for issue in self.issues.values()
                if issue["state"] == state
                and label in {entry["name"] for entry in issue["labels"]}
            ]
            listed.sort(key=lambda issue: issue["updated_at"], reverse=True)
            per_page = int(request.url.params.get("per_page", "30"))
            return httpx.Response(200, json=listed[:per_page])

        if request.method == "PATCH" and request.url.path.startswith(base + "/"):
            number = int(request.url.path.rsplit("/", 1)[1])
            if number in self.fail_close:
                return httpx.Response(500, json={"message": "boom"})
            self.issues[number]["state"] = "closed"
            return httpx.Response(200, json=self.issues[number])

        return httpx.Response(404, json={"message": "Not Found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def sync_settings() -> Settings:
    return Settings(
        _env_file=None,
        sync_relay_owner="acme",
        sync_relay_repo="hub-sync",
        sync_relay_token="test-token",
        sync_max_attempts=3,
        sync_startup_delay_seconds=0,
    )


@pytest.fixture
def make_relay(github, sync_settings) -> Callable[[], GitHubRelay]:
    def _make() -> GitHubRelay:
        return GitHubRelay.from_settings(sync_settings, transport=github.transport())

    return _make


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
