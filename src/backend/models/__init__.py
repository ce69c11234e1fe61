"""Document models module."""

from models.cosmos_documents import (
    CandidateDocument,
    CandidateStatus,
    CosmosDocument,
    VoteDocument,
)

__all__ = [
    "CosmosDocument",
    "CandidateDocument",
    "CandidateStatus",
    "VoteDocument",
]
