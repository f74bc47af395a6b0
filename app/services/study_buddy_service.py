"""
Study buddy recommendation pipelines.

Both pipelines run: gather profiles -> build prompt -> call model -> reconcile.
Matchmaking additionally ranks the reconciled matches.

Caller input errors are raised before any store or model access. Everything
that fails downstream is logged here and re-raised as a generic INTERNAL error.
"""
import logging
from typing import List, Optional, Sequence

from app.middleware.error_handling import (
    AppException,
    InternalException,
    ModelParseFailure,
    ModelUnavailable,
)
from app.prompts.matchmaking_prompts import build_matchmaking_prompt, build_starters_prompt
from app.schemas.profile import EnrichedMatch
from app.services.candidate_gatherer import (
    gather_candidate_pool,
    gather_starter_profiles,
    validate_interests,
    validate_target_user_id,
)
from app.services.ranking import rank_matches
from app.services.response_reconciler import ResponseReconciler
from app.utils.logging_config import LogContext, log_performance

logger = logging.getLogger(__name__)

MATCHMAKING_ERROR = "An error occurred during matchmaking"
STARTERS_ERROR = "Failed to generate conversation starters"


class StudyBuddyService:
    """Runs the matchmaking and conversation starter pipelines for one caller."""

    def __init__(self, store, llm, reconciler: Optional[ResponseReconciler] = None):
        """
        Args:
            store: profile store with get_profile(user_id) and list_profiles()
            llm: model invoker with async generate(prompt) -> str
            reconciler: response reconciler (defaults to one that logs)
        """
        self.store = store
        self.llm = llm
        self.reconciler = reconciler or ResponseReconciler()

    @log_performance("find_study_buddy_matches")
    async def find_matches(
        self,
        user_id: str,
        interests: Optional[Sequence[str]],
        bio: Optional[str] = None
    ) -> List[EnrichedMatch]:
        """Recommend study partners for the caller, best first (at most 20)."""
        interests = validate_interests(interests)

        with LogContext(pipeline="matchmaking"):
            try:
                pool = await gather_candidate_pool(self.store, user_id)
                if not pool:
                    logger.info(f"No candidates for {user_id}; skipping model call")
                    return []

                prompt = build_matchmaking_prompt(interests, bio or "", pool)
                raw_text = await self.llm.generate(prompt)
                matches = self.reconciler.reconcile_matches(raw_text, pool)
                ranked = rank_matches(matches)
                logger.info(f"Returning {len(ranked)} matches from a pool of {len(pool)} for {user_id}")
                return ranked

            except AppException:
                raise
            except ModelUnavailable as e:
                logger.error(f"Matchmaking model unavailable for {user_id}: {e}")
                raise InternalException(MATCHMAKING_ERROR, original_error=e) from e
            except ModelParseFailure as e:
                logger.error(f"Failed to parse AI response for {user_id}: {e.raw_text!r}")
                raise InternalException(MATCHMAKING_ERROR, original_error=e) from e
            except Exception as e:
                logger.exception(f"Error in matchmaking for {user_id}")
                raise InternalException(MATCHMAKING_ERROR, original_error=e) from e

    @log_performance("get_conversation_starters")
    async def get_conversation_starters(self, user_id: str, target_user_id: Optional[str]) -> List[str]:
        """Suggest opening messages from the caller to the target user."""
        target_user_id = validate_target_user_id(target_user_id)

        with LogContext(pipeline="conversation_starters"):
            try:
                me, target = await gather_starter_profiles(self.store, user_id, target_user_id)
                prompt = build_starters_prompt(me, target)
                raw_text = await self.llm.generate(prompt)
                return self.reconciler.reconcile_starters(raw_text, target)

            except AppException:
                raise
            except ModelUnavailable as e:
                logger.error(f"Starter model unavailable for {user_id}: {e}")
                raise InternalException(STARTERS_ERROR, original_error=e) from e
            except Exception as e:
                logger.exception(f"Error in conversation starters for {user_id}")
                raise InternalException(STARTERS_ERROR, original_error=e) from e
