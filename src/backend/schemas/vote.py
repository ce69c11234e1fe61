"""
Vote-related Pydantic schemas.

Each voter holds at most one vote; these schemas describe the vote record,
the change/delete acknowledgements and the "my vote" status view.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Vote(BaseModel):
    """A stored vote."""

    id: str
    voter_id: str = Field(..., alias="voterId")
    candidate_id: str = Field(..., alias="candidateId")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class VoteChangeResponse(MessageResponse):
    """Response after successfully changing a vote."""

    vote: Vote


class VoteDetail(BaseModel):
    """
    A vote joined with its candidate at read time.

    Candidate fields are None when the candidate has since been deleted.
    """

    id: str
    candidate_id: str = Field(..., alias="candidateId")
    candidate_name: Optional[str] = Field(None, alias="candidateName")
    position: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    manifesto: Optional[str] = None
    when: datetime

    model_config = {"populate_by_name": True}


class VoteStatus(BaseModel):
    """Whether the current voter has voted, and for whom."""

    has_voted: bool = Field(..., alias="hasVoted")
    vote: Optional[VoteDetail] = None

    model_config = {"populate_by_name": True}
