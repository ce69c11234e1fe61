"""
Repository provider for dependency injection.

This module defines the store interfaces the services depend on and the
factory functions FastAPI uses to supply the Cosmos DB implementations.

Usage:
    from repositories.provider import get_candidate_repository

    async def some_endpoint(
        candidate_repo: CandidateRepositoryProtocol = Depends(get_candidate_repository),
    ):
        candidate = await candidate_repo.get_by_id(candidate_id)
"""

from typing import Any, Optional, Protocol, runtime_checkable

from models.cosmos_documents import CandidateDocument, CandidateStatus, VoteDocument

# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class CandidateRepositoryProtocol(Protocol):
    """Protocol defining candidate repository operations."""

    async def get_by_id(self, candidate_id: str) -> Optional[CandidateDocument]: ...
    async def get_by_name_and_position(self, name: str, position: str) -> Optional[CandidateDocument]: ...
    async def list_candidates(
        self,
        page: int = 1,
        limit: int = 10,
        q: Optional[str] = None,
        status: Optional[CandidateStatus] = None,
    ) -> tuple[list[CandidateDocument], int]: ...
    async def list_active(self) -> list[CandidateDocument]: ...
    async def get_all(self) -> list[CandidateDocument]: ...
    async def create(
        self,
        name: str,
        position: str,
        manifesto: str = "",
        photo_url: str = "",
        status: CandidateStatus = CandidateStatus.ACTIVE,
    ) -> CandidateDocument: ...
    async def update_fields(self, candidate_id: str, **fields: Any) -> Optional[CandidateDocument]: ...
    async def delete(self, candidate_id: str) -> bool: ...
    async def increment_vote_count(self, candidate_id: str) -> bool: ...
    async def decrement_vote_count(self, candidate_id: str) -> bool: ...
    async def set_vote_count(self, candidate_id: str, vote_count: int) -> bool: ...


@runtime_checkable
class VoteRepositoryProtocol(Protocol):
    """Protocol defining vote repository operations."""

    async def get_by_voter(self, voter_id: str) -> Optional[VoteDocument]: ...
    async def count_by_candidate(self) -> dict[str, int]: ...
    async def create(self, voter_id: str, candidate_id: str) -> VoteDocument: ...
    async def update_candidate(self, vote: VoteDocument, candidate_id: str) -> VoteDocument: ...
    async def delete(self, vote: VoteDocument) -> bool: ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


async def get_candidate_repository() -> CandidateRepositoryProtocol:
    """Get the candidate repository."""
    from repositories.cosmos_candidate_repository import CosmosCandidateRepository

    return CosmosCandidateRepository()


async def get_vote_repository() -> VoteRepositoryProtocol:
    """Get the vote repository."""
    from repositories.cosmos_vote_repository import CosmosVoteRepository

    return CosmosVoteRepository()
