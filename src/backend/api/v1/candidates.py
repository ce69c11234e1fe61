"""
Admin Candidate Management Endpoints.

Provides CRUD operations for candidates plus tally audit and repair.
Every endpoint requires an admin identity.

Tallies (vote_count) are never writable here; they are maintained by the
vote endpoints and only repaired through the reconcile endpoint.
"""

import math
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps import get_current_admin_user, get_tally_service
from core.config import settings
from models.cosmos_documents import CandidateStatus
from repositories.provider import CandidateRepositoryProtocol, get_candidate_repository
from schemas.candidate import (
    Candidate,
    CandidateCreate,
    CandidateListResponse,
    CandidateStatusEnum,
    CandidateUpdate,
    TallyAuditResponse,
)
from schemas.converters import audit_to_schema, candidate_document_to_schema
from schemas.user import AuthenticatedUser
from schemas.vote import MessageResponse
from services.tally_service import TallyService

logger = structlog.get_logger(__name__)

router = APIRouter()

CandidateRepo = Annotated[CandidateRepositoryProtocol, Depends(get_candidate_repository)]
AdminUser = Annotated[AuthenticatedUser, Depends(get_current_admin_user)]


# ============================================================================
# CRUD Endpoints
# ============================================================================


@router.post("", response_model=Candidate, status_code=status.HTTP_201_CREATED)
async def create_candidate(
    candidate_data: CandidateCreate,
    admin: AdminUser,
    candidate_repo: CandidateRepo,
) -> Candidate:
    """Create a candidate. Tallies always start at zero."""
    if not candidate_data.name or not candidate_data.position:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="name and position are required",
        )

    existing = await candidate_repo.get_by_name_and_position(candidate_data.name, candidate_data.position)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Candidate already exists",
        )

    candidate = await candidate_repo.create(
        name=candidate_data.name,
        position=candidate_data.position,
        manifesto=candidate_data.manifesto or "",
        photo_url=candidate_data.photo_url or "",
        status=CandidateStatus(candidate_data.status.value),
    )
    logger.info("candidate_created", admin_id=admin.id, candidate_id=candidate.id)
    return candidate_document_to_schema(candidate)


@router.get("", response_model=CandidateListResponse)
async def list_candidates(
    admin: AdminUser,
    candidate_repo: CandidateRepo,
    q: Optional[str] = Query(None, max_length=200, description="Search in name or position"),
    status_filter: Optional[CandidateStatusEnum] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.CANDIDATES_PAGE_SIZE,
        ge=1,
        le=settings.CANDIDATES_MAX_PAGE_SIZE,
        description="Items per page",
    ),
) -> CandidateListResponse:
    """List all candidates, newest first."""
    search = q.strip() if q else None
    candidates, total = await candidate_repo.list_candidates(
        page=page,
        limit=limit,
        q=search or None,
        status=CandidateStatus(status_filter.value) if status_filter else None,
    )
    return CandidateListResponse(
        items=[candidate_document_to_schema(c) for c in candidates],
        total=total,
        page=page,
        pages=max(1, math.ceil(total / limit)),
    )


# ============================================================================
# Tally Endpoints
# ============================================================================


@router.get("/tallies/audit", response_model=TallyAuditResponse)
async def audit_tallies(
    admin: AdminUser,
    tally_service: Annotated[TallyService, Depends(get_tally_service)],
) -> TallyAuditResponse:
    """Compare every stored tally with the live vote count."""
    audit = await tally_service.audit()
    return audit_to_schema(audit)


@router.post("/tallies/reconcile", response_model=TallyAuditResponse)
async def reconcile_tallies(
    admin: AdminUser,
    tally_service: Annotated[TallyService, Depends(get_tally_service)],
) -> TallyAuditResponse:
    """Overwrite mismatching tallies with the live vote count."""
    audit = await tally_service.reconcile()
    logger.warning(
        "tallies_reconciled",
        admin_id=admin.id,
        repaired=len(audit.mismatches),
    )
    return audit_to_schema(audit)


# ============================================================================
# Single Candidate Endpoints
# ============================================================================


@router.get("/{candidate_id}", response_model=Candidate)
async def get_candidate(
    candidate_id: str,
    admin: AdminUser,
    candidate_repo: CandidateRepo,
) -> Candidate:
    """Get a candidate by ID."""
    candidate = await candidate_repo.get_by_id(candidate_id)
    if not candidate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")
    return candidate_document_to_schema(candidate)


@router.patch("/{candidate_id}", response_model=Candidate)
async def update_candidate(
    candidate_id: str,
    candidate_data: CandidateUpdate,
    admin: AdminUser,
    candidate_repo: CandidateRepo,
) -> Candidate:
    """
    Update candidate details or status.

    Withdrawing a candidate stops new votes; existing votes are kept.
    """
    candidate = await candidate_repo.get_by_id(candidate_id)
    if not candidate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")

    updates = candidate_data.model_dump(exclude_unset=True)
    for required in ("name", "position"):
        if required in updates and not updates[required]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{required} cannot be empty",
            )
    for optional in ("manifesto", "photo_url"):
        if optional in updates and updates[optional] is None:
            updates[optional] = ""
    if updates.get("status") is None:
        updates.pop("status", None)
    else:
        updates["status"] = CandidateStatus(updates["status"])

    name = updates.get("name", candidate.name)
    position = updates.get("position", candidate.position)
    if (name, position) != (candidate.name, candidate.position):
        clash = await candidate_repo.get_by_name_and_position(name, position)
        if clash and clash.id != candidate_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Candidate already exists",
            )

    updated = await candidate_repo.update_fields(candidate_id, **updates)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")

    logger.info(
        "candidate_updated",
        admin_id=admin.id,
        candidate_id=candidate_id,
        fields=sorted(updates),
    )
    return candidate_document_to_schema(updated)


@router.delete("/{candidate_id}", response_model=MessageResponse)
async def delete_candidate(
    candidate_id: str,
    admin: AdminUser,
    candidate_repo: CandidateRepo,
) -> MessageResponse:
    """
    Delete a candidate.

    Votes for the candidate are not removed; they become orphaned and are
    reported by the tally audit.
    """
    deleted = await candidate_repo.delete(candidate_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Candidate not found")

    logger.warning("candidate_deleted", admin_id=admin.id, candidate_id=candidate_id)
    return MessageResponse(message="Candidate deleted successfully")
