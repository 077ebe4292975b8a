"""Link submission request/response schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from budgetgamer.services.submission_service import SubmissionType


class SubmissionRequest(BaseModel):
    """A single link plus what the submitter says it is."""

    url: str = Field(..., min_length=1, max_length=2048)
    type: SubmissionType = SubmissionType.GAME


class SubmissionData(BaseModel):
    """Where the submitted link ended up."""

    entity_kind: str
    provider: str
    id: UUID
