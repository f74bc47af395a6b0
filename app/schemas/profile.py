"""
Domain models shared by the recommendation pipelines.
"""
from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NAME = "Anonymous"


class UserProfile(BaseModel):
    """Read-only snapshot of one user record for the duration of a request."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Store-assigned user identifier")
    name: str = Field(DEFAULT_NAME, description="Display name")
    bio: str = Field("", description="Free-text bio")
    interests: Tuple[str, ...] = Field(default_factory=tuple, description="Ordered study interests")
    image_url: str = Field("", description="Profile picture URL")


# Position in this tuple is the only identifier the model ever sees for a candidate.
CandidatePool = Tuple[UserProfile, ...]


class EnrichedMatch(BaseModel):
    """A ranked match: identity and content from the store, score and reason from the model."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    name: str
    bio: str
    interests: List[str]
    image_url: str = Field(..., alias="imageUrl")
    match_score: int = Field(..., ge=0, le=100, alias="matchScore")
    match_reason: str = Field(..., min_length=1, alias="matchReason")
