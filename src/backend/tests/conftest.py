"""
Pytest fixtures for Ballotbox backend tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

from core.exceptions import DuplicateVoterError, VoteConflictError  # noqa: E402
from models.cosmos_documents import CandidateDocument, CandidateStatus, VoteDocument  # noqa: E402


# =============================================================================
# In-memory stores
# =============================================================================


class StoreLog:
    """Ordered record of write calls made against the in-memory stores."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}

    def record(self, operation: str, target: str) -> None:
        if operation in self.failures:
            raise self.failures.pop(operation)
        self.calls.append((operation, target))

    def fail_next(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make the next call of `operation` raise instead of writing."""
        self.failures[operation] = error or RuntimeError(f"{operation} failed")


class InMemoryCandidateRepository:
    """Candidate store kept in a dict, with the same contract as the Cosmos one."""

    def __init__(self, log: StoreLog) -> None:
        self.log = log
        self.items: dict[str, CandidateDocument] = {}

    def add(self, name: str, position: str = "President", **kwargs: Any) -> CandidateDocument:
        candidate = CandidateDocument(name=name, position=position, **kwargs)
        self.items[candidate.id] = candidate
        return candidate

    async def get_by_id(self, candidate_id: str) -> Optional[CandidateDocument]:
        candidate = self.items.get(candidate_id)
        return candidate.model_copy() if candidate else None

    async def get_by_name_and_position(self, name: str, position: str) -> Optional[CandidateDocument]:
        for candidate in self.items.values():
            if candidate.name == name and candidate.position == position:
                return candidate.model_copy()
        return None

    async def list_candidates(self, page=1, limit=10, q=None, status=None):
        matches = list(self.items.values())
        if q:
            needle = q.lower()
            matches = [c for c in matches if needle in c.name.lower() or needle in c.position.lower()]
        if status:
            matches = [c for c in matches if c.status == CandidateStatus(status).value]
        matches.sort(key=lambda c: c.created_at, reverse=True)
        start = (page - 1) * limit
        return [c.model_copy() for c in matches[start : start + limit]], len(matches)

    async def list_active(self) -> list[CandidateDocument]:
        active = [c for c in self.items.values() if c.is_active]
        return sorted(active, key=lambda c: (c.position.lower(), c.name.lower()))

    async def get_all(self) -> list[CandidateDocument]:
        return [c.model_copy() for c in self.items.values()]

    async def create(self, name, position, manifesto="", photo_url="", status=CandidateStatus.ACTIVE):
        self.log.record("create_candidate", name)
        return self.add(name, position, manifesto=manifesto, photo_url=photo_url, status=status).model_copy()

    async def update_fields(self, candidate_id: str, **fields: Any) -> Optional[CandidateDocument]:
        candidate = self.items.get(candidate_id)
        if candidate is None:
            return None
        allowed = {k: v for k, v in fields.items() if k in {"name", "position", "manifesto", "photo_url", "status"}}
        if "status" in allowed:
            allowed["status"] = CandidateStatus(allowed["status"]).value
        self.items[candidate_id] = candidate.model_copy(update=allowed)
        return self.items[candidate_id].model_copy()

    async def delete(self, candidate_id: str) -> bool:
        return self.items.pop(candidate_id, None) is not None

    async def increment_vote_count(self, candidate_id: str) -> bool:
        self.log.record("increment", candidate_id)
        candidate = self.items.get(candidate_id)
        if candidate is None:
            return False
        candidate.vote_count += 1
        return True

    async def decrement_vote_count(self, candidate_id: str) -> bool:
        self.log.record("decrement", candidate_id)
        candidate = self.items.get(candidate_id)
        if candidate is None or candidate.vote_count == 0:
            return False
        candidate.vote_count -= 1
        return True

    async def set_vote_count(self, candidate_id: str, vote_count: int) -> bool:
        candidate = self.items.get(candidate_id)
        if candidate is None:
            return False
        candidate.vote_count = vote_count
        return True


class InMemoryVoteRepository:
    """Vote store keyed by voter, enforcing one vote per voter like the unique key policy."""

    def __init__(self, log: StoreLog) -> None:
        self.log = log
        self.items: dict[str, VoteDocument] = {}
        self._version = 0

    def _next_etag(self) -> str:
        self._version += 1
        return f"etag-{self._version}"

    async def get_by_voter(self, voter_id: str) -> Optional[VoteDocument]:
        vote = self.items.get(voter_id)
        return vote.model_copy() if vote else None

    async def count_by_candidate(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for vote in self.items.values():
            counts[vote.candidate_id] = counts.get(vote.candidate_id, 0) + 1
        return counts

    async def create(self, voter_id: str, candidate_id: str) -> VoteDocument:
        self.log.record("create_vote", candidate_id)
        if voter_id in self.items:
            raise DuplicateVoterError(voter_id)
        vote = VoteDocument(voter_id=voter_id, candidate_id=candidate_id, etag=self._next_etag())
        self.items[voter_id] = vote
        return vote.model_copy()

    async def update_candidate(self, vote: VoteDocument, candidate_id: str) -> VoteDocument:
        self.log.record("repoint", candidate_id)
        stored = self.items.get(vote.voter_id)
        if stored is None or stored.etag != vote.etag:
            raise VoteConflictError(vote.id)
        updated = stored.model_copy(update={"candidate_id": candidate_id, "etag": self._next_etag()})
        self.items[vote.voter_id] = updated
        return updated.model_copy()

    async def delete(self, vote: VoteDocument) -> bool:
        self.log.record("delete_vote", vote.candidate_id)
        stored = self.items.get(vote.voter_id)
        if stored is None:
            return False
        if stored.etag != vote.etag:
            raise VoteConflictError(vote.id)
        del self.items[vote.voter_id]
        return True


@pytest.fixture
def store_log() -> StoreLog:
    return StoreLog()


@pytest.fixture
def candidate_repo(store_log: StoreLog) -> InMemoryCandidateRepository:
    return InMemoryCandidateRepository(store_log)


@pytest.fixture
def vote_repo(store_log: StoreLog) -> InMemoryVoteRepository:
    return InMemoryVoteRepository(store_log)


# =============================================================================
# Application / HTTP
# =============================================================================


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
async def app(candidate_repo, vote_repo) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the in-memory stores."""
    from main import app as fastapi_app
    from repositories.provider import get_candidate_repository, get_vote_repository

    fastapi_app.dependency_overrides[get_candidate_repository] = lambda: candidate_repo
    fastapi_app.dependency_overrides[get_vote_repository] = lambda: vote_repo
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def make_auth_headers(user_id: str, is_admin: bool = False) -> dict[str, str]:
    """Bearer headers carrying a real signed access token."""
    from core.security import issue_access_token

    token = issue_access_token(user_id, is_admin=is_admin)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def voter_headers() -> dict[str, str]:
    return make_auth_headers("voter-1")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return make_auth_headers("admin-1", is_admin=True)


@pytest.fixture
def auth_headers_for():
    """Build headers for an arbitrary identity."""
    return make_auth_headers
