"""
Prompt templates for study buddy matchmaking and conversation starters.
"""
import json
from typing import Sequence
from langchain_core.prompts import PromptTemplate

from app.schemas.profile import UserProfile

NO_BIO = "No bio provided"
NO_INTERESTS = "None listed"

MIN_MATCH_SCORE = 50
MAX_REASON_WORDS = 50
NUM_STARTERS = 4

# Literal examples shown to the model; field names must match what the reconciler reads.
MATCHES_JSON_EXAMPLE = {
    "matches": [
        {
            "candidateIndex": 0,
            "score": 85,
            "reason": "Your explanation here"
        }
    ]
}

STARTERS_JSON_EXAMPLE = {
    "starters": [
        "Your starter here",
        "Another starter",
        "Third starter",
        "Fourth starter"
    ]
}

MATCHMAKING_TEMPLATE = """You are a study buddy matchmaking assistant. Analyze the following user profile and candidate profiles to suggest the best study matches.

Current User Profile:
- Interests: {interests}
- Bio: {bio}

Candidate Profiles:
{candidates}

For each candidate, provide a match score (0-100) and a brief, friendly explanation (max {max_reason_words} words) of why they would be a good study buddy. Consider, in order of importance:
1. Overlapping interests (most important)
2. Complementary skills
3. Bio compatibility
4. Study style hints

Refer to a candidate ONLY by its candidateIndex, the number in square brackets before its name.

Respond in valid JSON format:
{json_example}

Field types:
- candidateIndex: integer, one of the candidate numbers listed above
- score: number from 0 to 100
- reason: string

Only include candidates with score >= {min_score}. Sort by score descending."""

STARTERS_TEMPLATE = """Generate {num_starters} friendly, natural conversation starters for a study buddy connection.

Your Profile:
- Name: {self_name}
- Interests: {self_interests}
- Bio: {self_bio}

Their Profile:
- Name: {target_name}
- Interests: {target_interests}
- Bio: {target_bio}

Create conversation starters that:
1. Reference shared interests
2. Are casual and friendly
3. Invite collaboration
4. Are 10-20 words each

Respond in valid JSON:
{json_example}

Field types:
- starters: array of strings"""


def _join_interests(interests: Sequence[str]) -> str:
    return ", ".join(interests) or NO_INTERESTS


def _format_candidates(pool: Sequence[UserProfile]) -> str:
    """Enumerate candidates by 0-based pool position. Store ids are never included."""
    blocks = []
    for idx, candidate in enumerate(pool):
        blocks.append(
            f"[{idx}] {candidate.name}\n"
            f"   - Interests: {_join_interests(candidate.interests)}\n"
            f"   - Bio: {candidate.bio or NO_BIO}"
        )
    return "\n\n".join(blocks)


def build_matchmaking_prompt(
    interests: Sequence[str],
    bio: str,
    pool: Sequence[UserProfile]
) -> str:
    """Render the matchmaking prompt for the caller's interests/bio and the candidate pool."""
    prompt = PromptTemplate(
        template=MATCHMAKING_TEMPLATE,
        input_variables=["interests", "bio", "candidates", "json_example", "max_reason_words", "min_score"],
    )
    return prompt.format(
        interests=_join_interests(interests),
        bio=bio or NO_BIO,
        candidates=_format_candidates(pool),
        json_example=json.dumps(MATCHES_JSON_EXAMPLE, indent=2),
        max_reason_words=MAX_REASON_WORDS,
        min_score=MIN_MATCH_SCORE,
    )


def build_starters_prompt(me: UserProfile, target: UserProfile) -> str:
    """Render the conversation starter prompt for the caller and the target user."""
    prompt = PromptTemplate(
        template=STARTERS_TEMPLATE,
        input_variables=[
            "num_starters", "self_name", "self_interests", "self_bio",
            "target_name", "target_interests", "target_bio", "json_example",
        ],
    )
    return prompt.format(
        num_starters=NUM_STARTERS,
        self_name=me.name,
        self_interests=_join_interests(me.interests),
        self_bio=me.bio or NO_BIO,
        target_name=target.name,
        target_interests=_join_interests(target.interests),
        target_bio=target.bio or NO_BIO,
        json_example=json.dumps(STARTERS_JSON_EXAMPLE, indent=2),
    )
