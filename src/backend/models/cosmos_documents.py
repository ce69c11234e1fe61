"""
Cosmos DB document models for Ballotbox.

These Pydantic models define the document structure stored in Cosmos DB.

Container Strategy:
- candidates: Candidate records with their running tally (partition: /id)
- votes: One vote per voter (partition: /voter_id, unique key: /voter_id)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class CandidateStatus(str, Enum):
    """Whether a candidate can receive new votes."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"


# ============================================================================
# Base Document Model
# ============================================================================


class CosmosDocument(BaseModel):
    """
    Base class for Cosmos DB documents.

    All documents have:
    - id: Unique identifier
    - etag: ETag of the stored version, used for optimistic concurrency.
      Read from the Cosmos `_etag` system property and never written back.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    etag: Optional[str] = Field(default=None, exclude=True)

    # Enum fields serialize as their values
    model_config = {"extra": "allow", "use_enum_values": True}

    @classmethod
    def from_item(cls, data: dict[str, Any]):
        """Build a document from a raw Cosmos item, dropping system properties."""
        fields = {k: v for k, v in data.items() if not k.startswith("_")}
        return cls(**fields, etag=data.get("_etag"))


# ============================================================================
# Candidate Documents
# ============================================================================


class CandidateDocument(CosmosDocument):
    """
    Candidate document stored in the 'candidates' container.

    Partition key: /id
    vote_count is only ever changed through atomic patch operations.
    """

    name: str
    position: str  # The office being contested, e.g. "President"
    manifesto: str = ""
    photo_url: str = ""
    status: CandidateStatus = CandidateStatus.ACTIVE
    vote_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == CandidateStatus.ACTIVE.value


# ============================================================================
# Vote Documents
# ============================================================================


class VoteDocument(CosmosDocument):
    """
    Vote document stored in the 'votes' container.

    Partition key: /voter_id
    The container's unique key policy on /voter_id guarantees at most one
    vote per voter.
    """

    voter_id: str
    candidate_id: str

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
