"""
Request/response schemas for the match endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.profile import EnrichedMatch


class StudyBuddyMatchRequest(BaseModel):
    """Request body for study buddy matchmaking.

    `interests` is optional here so that a missing or empty list is reported
    as INVALID_ARGUMENT by the pipeline instead of a schema error.
    """
    interests: Optional[List[str]] = Field(None, description="Caller's study interests (non-empty)")
    bio: Optional[str] = Field(None, description="Caller's bio")


class StudyBuddyMatchResponse(BaseModel):
    """Ranked matches, best first."""
    matches: List[EnrichedMatch] = Field(default_factory=list)


class ConversationStartersRequest(BaseModel):
    """Request body for conversation starters."""
    model_config = ConfigDict(populate_by_name=True)

    target_user_id: Optional[str] = Field(None, alias="targetUserId", description="User to start a conversation with")


class ConversationStartersResponse(BaseModel):
    """Suggested opening messages."""
    starters: List[str]
