"""
Tally results and audit.

Results group candidates by the position they contest. The audit compares
each stored vote_count with a live count of the votes referencing the
candidate; reconcile overwrites mismatching tallies with the live count.
Reconciliation is an admin repair tool only; the vote service never
recomputes tallies.
"""

from dataclasses import dataclass, field
from itertools import groupby

import structlog

from models.cosmos_documents import CandidateDocument
from repositories.provider import CandidateRepositoryProtocol, VoteRepositoryProtocol

logger = structlog.get_logger(__name__)


@dataclass
class PositionStanding:
    """Candidates for one position, leader first."""

    position: str
    total_votes: int
    candidates: list[CandidateDocument]


@dataclass
class TallyMismatch:
    candidate_id: str
    name: str
    stored_count: int
    actual_count: int


@dataclass
class TallyAudit:
    """Outcome of a tally audit."""

    checked_candidates: int
    mismatches: list[TallyMismatch] = field(default_factory=list)
    orphaned_votes: int = 0
    repaired: bool = False

    @property
    def consistent(self) -> bool:
        return not self.mismatches


class TallyService:
    """Read and verify candidate tallies."""

    def __init__(
        self,
        candidate_repo: CandidateRepositoryProtocol,
        vote_repo: VoteRepositoryProtocol,
    ):
        self.candidate_repo = candidate_repo
        self.vote_repo = vote_repo

    async def get_results(self) -> list[PositionStanding]:
        """Standings per position, ordered by position name."""
        candidates = await self.candidate_repo.get_all()
        candidates.sort(key=lambda c: (c.position.lower(), -c.vote_count, c.name.lower()))

        standings = []
        for position, group in groupby(candidates, key=lambda c: c.position.lower()):
            members = list(group)
            standings.append(
                PositionStanding(
                    position=members[0].position,
                    total_votes=sum(c.vote_count for c in members),
                    candidates=members,
                )
            )
        return standings

    async def audit(self) -> TallyAudit:
        """Compare stored tallies with live vote counts."""
        candidates = await self.candidate_repo.get_all()
        live_counts = await self.vote_repo.count_by_candidate()

        known_ids = {c.id for c in candidates}
        report = TallyAudit(
            checked_candidates=len(candidates),
            orphaned_votes=sum(n for cid, n in live_counts.items() if cid not in known_ids),
        )

        for candidate in candidates:
            actual = live_counts.get(candidate.id, 0)
            if candidate.vote_count != actual:
                report.mismatches.append(
                    TallyMismatch(
                        candidate_id=candidate.id,
                        name=candidate.name,
                        stored_count=candidate.vote_count,
                        actual_count=actual,
                    )
                )

        if not report.consistent:
            logger.warning(
                "tally_mismatch_detected",
                mismatches=len(report.mismatches),
                orphaned_votes=report.orphaned_votes,
            )
        return report

    async def reconcile(self) -> TallyAudit:
        """Audit, then overwrite each mismatching tally with the live count."""
        report = await self.audit()
        for mismatch in report.mismatches:
            await self.candidate_repo.set_vote_count(mismatch.candidate_id, mismatch.actual_count)
            logger.info(
                "tally_reconciled",
                candidate_id=mismatch.candidate_id,
                stored_count=mismatch.stored_count,
                actual_count=mismatch.actual_count,
            )
        report.repaired = bool(report.mismatches)
        return report
