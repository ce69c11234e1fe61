"""
Candidate-related Pydantic schemas.

JSON field names follow the frontend's camelCase convention through aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CandidateStatusEnum(str, Enum):
    """Whether a candidate can receive new votes."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


class CandidateCreate(BaseModel):
    """Schema for creating a candidate (admin only)."""

    name: str = Field(..., max_length=200)
    position: str = Field(..., max_length=200, description="The office being contested")
    manifesto: Optional[str] = Field("", max_length=5000)
    photo_url: Optional[str] = Field("", alias="photoUrl", max_length=2048)
    status: CandidateStatusEnum = CandidateStatusEnum.ACTIVE

    model_config = {"populate_by_name": True}

    @field_validator("name", "position", "manifesto", "photo_url")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


class CandidateUpdate(BaseModel):
    """Schema for updating a candidate. vote_count can never be set."""

    name: Optional[str] = Field(None, max_length=200)
    position: Optional[str] = Field(None, max_length=200)
    manifesto: Optional[str] = Field(None, max_length=5000)
    photo_url: Optional[str] = Field(None, alias="photoUrl", max_length=2048)
    status: Optional[CandidateStatusEnum] = None

    model_config = {"populate_by_name": True}

    @field_validator("name", "position", "manifesto", "photo_url")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


class Candidate(BaseModel):
    """Schema for candidate responses."""

    id: str
    name: str
    position: str
    manifesto: str = ""
    photo_url: str = Field("", alias="photoUrl")
    status: CandidateStatusEnum
    vote_count: int = Field(0, alias="voteCount")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}


class CandidateListResponse(BaseModel):
    """Paginated candidate listing."""

    items: list[Candidate]
    total: int
    page: int
    pages: int


class PositionResult(BaseModel):
    """Standings for one contested position."""

    position: str
    total_votes: int = Field(..., alias="totalVotes")
    candidates: list[Candidate]

    model_config = {"populate_by_name": True}


class TallyMismatch(BaseModel):
    """A candidate whose stored tally disagrees with its live vote count."""

    candidate_id: str = Field(..., alias="candidateId")
    name: str
    stored_count: int = Field(..., alias="storedCount")
    actual_count: int = Field(..., alias="actualCount")

    model_config = {"populate_by_name": True}


class TallyAuditResponse(BaseModel):
    """Result of comparing stored tallies with live vote counts."""

    consistent: bool
    checked_candidates: int = Field(..., alias="checkedCandidates")
    mismatches: list[TallyMismatch]
    orphaned_votes: int = Field(..., alias="orphanedVotes")
    repaired: bool = False

    model_config = {"populate_by_name": True}
