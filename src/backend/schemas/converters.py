"""
Schema converter functions.

Centralized helpers for converting Cosmos documents to API schemas.
These are the single source of truth for document-to-schema conversions.
"""

from typing import TYPE_CHECKING, Optional

from models.cosmos_documents import CandidateDocument, VoteDocument
from schemas.candidate import (
    Candidate,
    CandidateStatusEnum,
    PositionResult,
    TallyAuditResponse,
    TallyMismatch,
)
from schemas.vote import Vote, VoteDetail, VoteStatus

if TYPE_CHECKING:
    from services.tally_service import PositionStanding, TallyAudit


def candidate_document_to_schema(candidate: CandidateDocument) -> Candidate:
    """Convert a CandidateDocument to the Candidate response schema."""
    return Candidate(
        id=candidate.id,
        name=candidate.name,
        position=candidate.position,
        manifesto=candidate.manifesto or "",
        photo_url=candidate.photo_url or "",
        status=CandidateStatusEnum(candidate.status),
        vote_count=candidate.vote_count,
        created_at=candidate.created_at,
        updated_at=candidate.updated_at,
    )


def vote_document_to_schema(vote: VoteDocument) -> Vote:
    """Convert a VoteDocument to the Vote response schema."""
    return Vote(
        id=vote.id,
        voter_id=vote.voter_id,
        candidate_id=vote.candidate_id,
        created_at=vote.created_at,
        updated_at=vote.updated_at,
    )


def vote_status_from_documents(
    vote: Optional[VoteDocument],
    candidate: Optional[CandidateDocument],
) -> VoteStatus:
    """
    Build the "my vote" view from a vote and the candidate it references.

    A missing candidate leaves the denormalized fields empty.
    """
    if vote is None:
        return VoteStatus(has_voted=False, vote=None)

    return VoteStatus(
        has_voted=True,
        vote=VoteDetail(
            id=vote.id,
            candidate_id=vote.candidate_id,
            candidate_name=candidate.name if candidate else None,
            position=candidate.position if candidate else None,
            photo_url=candidate.photo_url if candidate else None,
            manifesto=candidate.manifesto if candidate else None,
            when=vote.created_at,
        ),
    )


def standing_to_schema(standing: "PositionStanding") -> PositionResult:
    """Convert a position standing to the PositionResult response schema."""
    return PositionResult(
        position=standing.position,
        total_votes=standing.total_votes,
        candidates=[candidate_document_to_schema(c) for c in standing.candidates],
    )


def audit_to_schema(audit: "TallyAudit") -> TallyAuditResponse:
    """Convert a tally audit to its response schema."""
    return TallyAuditResponse(
        consistent=audit.consistent,
        checked_candidates=audit.checked_candidates,
        mismatches=[
            TallyMismatch(
                candidate_id=m.candidate_id,
                name=m.name,
                stored_count=m.stored_count,
                actual_count=m.actual_count,
            )
            for m in audit.mismatches
        ],
        orphaned_votes=audit.orphaned_votes,
        repaired=audit.repaired,
    )
