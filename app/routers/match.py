"""
Match API endpoints.
Provides study buddy matchmaking and conversation starters.
"""
import logging
from fastapi import APIRouter, Depends

from app.adapters.dynamodb import get_profile_store
from app.middleware.auth import get_current_user_id
from app.schemas.match import (
    ConversationStartersRequest,
    ConversationStartersResponse,
    StudyBuddyMatchRequest,
    StudyBuddyMatchResponse,
)
from app.services.llm_service import get_llm_service
from app.services.study_buddy_service import StudyBuddyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/match", tags=["Match"])


def get_study_buddy_service(
    store=Depends(get_profile_store),
    llm=Depends(get_llm_service),
) -> StudyBuddyService:
    """Build the pipeline service from the store and model dependencies."""
    return StudyBuddyService(store=store, llm=llm)


@router.post("/study-buddies", response_model=StudyBuddyMatchResponse)
async def find_study_buddy_matches(
    request: StudyBuddyMatchRequest,
    user_id: str = Depends(get_current_user_id),
    service: StudyBuddyService = Depends(get_study_buddy_service),
):
    """
    Recommend study partners for the caller.

    Scores and reasons come from the model; identities and profile fields
    come from the store. Matches scoring under 50 are dropped and at most
    20 are returned, best first.
    """
    matches = await service.find_matches(user_id, request.interests, request.bio)
    return StudyBuddyMatchResponse(matches=matches)


@router.post("/conversation-starters", response_model=ConversationStartersResponse)
async def get_conversation_starters(
    request: ConversationStartersRequest,
    user_id: str = Depends(get_current_user_id),
    service: StudyBuddyService = Depends(get_study_buddy_service),
):
    """Suggest opening messages to another user. Falls back to generic starters."""
    starters = await service.get_conversation_starters(user_id, request.target_user_id)
    return ConversationStartersResponse(starters=starters)
