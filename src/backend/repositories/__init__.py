"""Repository modules for database access."""

from repositories.cosmos_candidate_repository import CosmosCandidateRepository
from repositories.cosmos_vote_repository import CosmosVoteRepository

__all__ = [
    "CosmosCandidateRepository",
    "CosmosVoteRepository",
]
