"""Schemas module initialization."""

from schemas.candidate import (
    Candidate,
    CandidateCreate,
    CandidateListResponse,
    CandidateStatusEnum,
    CandidateUpdate,
    PositionResult,
    TallyAuditResponse,
)
from schemas.user import AuthenticatedUser
from schemas.vote import MessageResponse, Vote, VoteChangeResponse, VoteDetail, VoteStatus

__all__ = [
    "AuthenticatedUser",
    "Candidate",
    "CandidateCreate",
    "CandidateListResponse",
    "CandidateStatusEnum",
    "CandidateUpdate",
    "PositionResult",
    "TallyAuditResponse",
    "MessageResponse",
    "Vote",
    "VoteChangeResponse",
    "VoteDetail",
    "VoteStatus",
]
