"""
Cosmos DB Candidate repository.

Handles candidate CRUD and the atomic tally updates used by the vote service.
Partition key is the candidate id, so every tally update is a point write.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceNotFoundError,
)

from db.cosmos_session import (
    CANDIDATES_CONTAINER,
    create_item,
    delete_item,
    patch_item,
    query_count,
    query_items,
    read_item,
)
from models.cosmos_documents import CandidateDocument, CandidateStatus

logger = logging.getLogger(__name__)

# Fields an administrator may change. vote_count is deliberately absent.
UPDATABLE_FIELDS = frozenset({"name", "position", "manifesto", "photo_url", "status"})


class CosmosCandidateRepository:
    """Repository for candidate operations using Cosmos DB."""

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_id(self, candidate_id: str) -> Optional[CandidateDocument]:
        """Get a candidate by ID (direct point read)."""
        data = await read_item(CANDIDATES_CONTAINER, candidate_id, partition_key=candidate_id)
        if data is None:
            return None
        return CandidateDocument.from_item(data)

    async def get_by_name_and_position(self, name: str, position: str) -> Optional[CandidateDocument]:
        """Find a candidate standing for a position under a given name."""
        query = """
            SELECT * FROM c
            WHERE c.name = @name
              AND c.position = @position
        """
        results = await query_items(
            CANDIDATES_CONTAINER,
            query,
            parameters=[
                {"name": "@name", "value": name},
                {"name": "@position", "value": position},
            ],
            max_items=1,
        )
        if not results:
            return None
        return CandidateDocument.from_item(results[0])

    async def list_candidates(
        self,
        page: int = 1,
        limit: int = 10,
        q: Optional[str] = None,
        status: Optional[CandidateStatus] = None,
    ) -> tuple[list[CandidateDocument], int]:
        """List candidates with search, status filter and pagination (newest first)."""
        offset = (page - 1) * limit

        conditions: list[str] = []
        parameters: list[dict[str, Any]] = []

        if q:
            conditions.append("(CONTAINS(c.name, @q, true) OR CONTAINS(c.position, @q, true))")
            parameters.append({"name": "@q", "value": q})

        if status:
            conditions.append("c.status = @status")
            parameters.append({"name": "@status", "value": CandidateStatus(status).value})

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total = await query_count(
            CANDIDATES_CONTAINER,
            f"SELECT VALUE COUNT(1) FROM c {where_clause}",
            parameters=parameters,
        )

        query = f"""
            SELECT * FROM c
            {where_clause}
            ORDER BY c.created_at DESC
            OFFSET @offset LIMIT @limit
        """
        results = await query_items(
            CANDIDATES_CONTAINER,
            query,
            parameters=parameters
            + [
                {"name": "@offset", "value": offset},
                {"name": "@limit", "value": limit},
            ],
        )
        return [CandidateDocument.from_item(r) for r in results], total

    async def list_active(self) -> list[CandidateDocument]:
        """Get candidates currently accepting votes, ordered by position then name."""
        query = "SELECT * FROM c WHERE c.status = @status"
        results = await query_items(
            CANDIDATES_CONTAINER,
            query,
            parameters=[{"name": "@status", "value": CandidateStatus.ACTIVE.value}],
        )
        candidates = [CandidateDocument.from_item(r) for r in results]
        # Sorted here to avoid requiring a composite index
        return sorted(candidates, key=lambda c: (c.position.lower(), c.name.lower()))

    async def get_all(self) -> list[CandidateDocument]:
        """Get every candidate (cross-partition, used for results and audits)."""
        results = await query_items(CANDIDATES_CONTAINER, "SELECT * FROM c")
        return [CandidateDocument.from_item(r) for r in results]

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        name: str,
        position: str,
        manifesto: str = "",
        photo_url: str = "",
        status: CandidateStatus = CandidateStatus.ACTIVE,
    ) -> CandidateDocument:
        """Create a candidate with an empty tally."""
        candidate = CandidateDocument(
            name=name,
            position=position,
            manifesto=manifesto,
            photo_url=photo_url,
            status=status,
        )
        await create_item(CANDIDATES_CONTAINER, candidate.model_dump(mode="json"))
        logger.info(f"Created candidate {candidate.id} for {position}")
        return candidate

    async def update_fields(self, candidate_id: str, **fields: Any) -> Optional[CandidateDocument]:
        """
        Update whitelisted candidate fields in place.

        Unknown fields (including vote_count) are ignored.
        Returns None if the candidate does not exist.
        """
        operations: list[dict[str, Any]] = []
        for field, value in fields.items():
            if field not in UPDATABLE_FIELDS:
                logger.warning(f"Ignoring non-updatable candidate field {field}")
                continue
            if isinstance(value, CandidateStatus):
                value = value.value
            operations.append({"op": "set", "path": f"/{field}", "value": value})

        if not operations:
            return await self.get_by_id(candidate_id)

        operations.append({"op": "set", "path": "/updated_at", "value": _now_iso()})
        try:
            data = await patch_item(CANDIDATES_CONTAINER, candidate_id, candidate_id, operations)
        except CosmosResourceNotFoundError:
            return None
        return CandidateDocument.from_item(data)

    async def delete(self, candidate_id: str) -> bool:
        """Delete a candidate. Votes referencing it are left in place."""
        try:
            await delete_item(CANDIDATES_CONTAINER, candidate_id, partition_key=candidate_id)
        except CosmosResourceNotFoundError:
            return False
        logger.info(f"Deleted candidate {candidate_id}")
        return True

    # ========================================================================
    # Tally Operations
    # ========================================================================

    async def increment_vote_count(self, candidate_id: str) -> bool:
        """Atomically add one to a candidate's tally. False if the candidate is missing."""
        try:
            await patch_item(
                CANDIDATES_CONTAINER,
                candidate_id,
                candidate_id,
                [
                    {"op": "incr", "path": "/vote_count", "value": 1},
                    {"op": "set", "path": "/updated_at", "value": _now_iso()},
                ],
            )
        except CosmosResourceNotFoundError:
            logger.warning(f"Cannot increment tally of missing candidate {candidate_id}")
            return False
        return True

    async def decrement_vote_count(self, candidate_id: str) -> bool:
        """
        Atomically subtract one from a candidate's tally.

        The store only applies the patch while vote_count > 0.
        False if the candidate is missing or its tally is already zero.

        The floor keeps tallies non-negative at the cost of dropping a
        decrement that is owed: a delete that runs between a cast's vote write
        and its increment finds the tally at zero, and the cast's increment
        then leaves it one too high. The audit reports such drift and
        reconcile repairs it.
        """
        try:
            await patch_item(
                CANDIDATES_CONTAINER,
                candidate_id,
                candidate_id,
                [
                    {"op": "incr", "path": "/vote_count", "value": -1},
                    {"op": "set", "path": "/updated_at", "value": _now_iso()},
                ],
                filter_predicate="FROM c WHERE c.vote_count > 0",
            )
        except CosmosResourceNotFoundError:
            logger.info(f"Skipping tally decrement for missing candidate {candidate_id}")
            return False
        except CosmosAccessConditionFailedError:
            logger.warning(f"Tally of candidate {candidate_id} is already zero")
            return False
        return True

    async def set_vote_count(self, candidate_id: str, vote_count: int) -> bool:
        """Overwrite a candidate's tally. Only used by tally reconciliation."""
        try:
            await patch_item(
                CANDIDATES_CONTAINER,
                candidate_id,
                candidate_id,
                [
                    {"op": "set", "path": "/vote_count", "value": vote_count},
                    {"op": "set", "path": "/updated_at", "value": _now_iso()},
                ],
            )
        except CosmosResourceNotFoundError:
            return False
        return True


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
