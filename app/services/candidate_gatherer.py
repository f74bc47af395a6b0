"""
Candidate gathering for the recommendation pipelines.

Loads profiles from the store; the store is synchronous (PynamoDB), so reads
run in worker threads to keep the event loop free.
"""
import asyncio
import logging
from typing import Any, List, Tuple

from app.middleware.error_handling import NotFoundException, ValidationException
from app.schemas.profile import CandidatePool, UserProfile

logger = logging.getLogger(__name__)


def validate_interests(interests: Any) -> List[str]:
    """Reject a missing or empty interests list. Runs before any store access."""
    if not interests or not isinstance(interests, (list, tuple)):
        raise ValidationException(
            "Interests array is required and must not be empty",
            field="interests"
        )
    return list(interests)


def validate_target_user_id(target_user_id: Any) -> str:
    """Reject a missing or blank target user id. Runs before any store access."""
    if not isinstance(target_user_id, str) or not target_user_id.strip():
        raise ValidationException("Target user ID is required", field="targetUserId")
    return target_user_id.strip()


async def gather_candidate_pool(store, user_id: str) -> CandidatePool:
    """
    Load every profile except the caller's, in store order.

    An empty pool is a valid result, not an error.
    """
    profiles = await asyncio.to_thread(store.list_profiles)
    pool = tuple(p for p in profiles if p.id != user_id)
    logger.info(f"Gathered {len(pool)} candidates for {user_id}")
    return pool


async def gather_starter_profiles(store, user_id: str, target_user_id: str) -> Tuple[UserProfile, UserProfile]:
    """
    Load the caller's and the target's profiles concurrently.

    Raises:
        NotFoundException: if either profile does not exist
    """
    me, target = await asyncio.gather(
        asyncio.to_thread(store.get_profile, user_id),
        asyncio.to_thread(store.get_profile, target_user_id),
    )
    if me is None or target is None:
        missing = user_id if me is None else target_user_id
        logger.info(f"Starter profiles incomplete, missing {missing}")
        raise NotFoundException("User profile not found")
    return me, target
