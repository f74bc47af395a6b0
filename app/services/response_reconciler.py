"""
Response Reconciler.

Turns untrusted model text into validated, store-backed results.

The model reply is never treated as a typed return value. It moves through
two explicit types:

    RawModelReply --parse_model_reply--> ParsedReply | ParseFailure

and only a ParsedReply is ever inspected further. For matchmaking, the
model refers to candidates by their position in the CandidatePool; that
integer is validated as an index and every profile field on the result is
read from the pool, never from the model. Only score and reason come from
the model.

Diagnostics go through an injected ReconcilerHook rather than straight to
a logger, so callers (and tests) decide what happens to them.
"""
import json
import math
import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from app.middleware.error_handling import ModelParseFailure
from app.schemas.profile import EnrichedMatch, UserProfile
from app.services.ranking import MAX_SCORE, MIN_SCORE, clamp_score, passes_threshold

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Similar interests and study goals"
MAX_STARTERS = 5

# Code-fence markers anywhere in the text: ```json, ```JSON, or bare ```
CODE_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\r?\n?", re.IGNORECASE)

# Events that mean an entry or a whole reply was dropped
WARNING_EVENTS = {
    "match_index_invalid",
    "match_score_missing",
    "match_entry_invalid",
    "match_duplicate_index",
    "match_parse_failed",
    "starters_parse_failed",
    "starters_empty",
}


class ReconcilerHook:
    """Receives reconciler diagnostics. The base hook discards them."""

    def emit(self, event: str, **context: Any) -> None:
        pass


class LoggingHook(ReconcilerHook):
    """Forwards reconciler events to the module logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def emit(self, event: str, **context: Any) -> None:
        level = logging.WARNING if event in WARNING_EVENTS else logging.DEBUG
        self.log.log(level, f"{event}: {context}", extra={"extra_fields": {"event": event}})


@dataclass(frozen=True)
class RawModelReply:
    """Model output exactly as received."""
    text: str


@dataclass(frozen=True)
class ParsedReply:
    """Model output that parsed as JSON. The structure is still unvalidated."""
    data: Any
    raw: RawModelReply


@dataclass(frozen=True)
class ParseFailure:
    """Model output that did not parse; keeps the raw text for diagnostics."""
    reason: str
    raw: RawModelReply


ParseResult = Union[ParsedReply, ParseFailure]


@dataclass(frozen=True)
class MatchCandidate:
    """One model-proposed match after type coercion. Fields are None when unusable."""
    candidate_index: Optional[int]
    score: Optional[float]
    reason: Optional[str]


def normalize_model_text(text: Optional[str]) -> str:
    """Strip code-fence markup and surrounding whitespace."""
    if not text:
        return ""
    return CODE_FENCE_PATTERN.sub("", text).strip()


def parse_model_reply(raw: RawModelReply) -> ParseResult:
    """Strictly parse normalized model text as JSON."""
    cleaned = normalize_model_text(raw.text)
    if not cleaned:
        return ParseFailure(reason="empty reply", raw=raw)
    try:
        return ParsedReply(data=json.loads(cleaned), raw=raw)
    except (json.JSONDecodeError, ValueError) as e:
        return ParseFailure(reason=f"invalid JSON: {e}", raw=raw)


def _extract_list(data: Any, key: str) -> Optional[list]:
    """The list under `key`, or the top-level value when the model skipped the wrapper object."""
    if isinstance(data, dict):
        data = data.get(key)
    return data if isinstance(data, list) else None


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
        return int(value)
    return None


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            score = float(value)
        except OverflowError:
            # JSON integers are unbounded; past float range they clamp like infinity
            score = math.inf if value > 0 else -math.inf
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(score) else score


def _as_reason(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def coerce_match_candidate(entry: Dict[str, Any]) -> MatchCandidate:
    """Read one entry of the model's "matches" list without trusting its types."""
    return MatchCandidate(
        candidate_index=_as_index(entry.get("candidateIndex")),
        score=_as_score(entry.get("score")),
        reason=_as_reason(entry.get("reason")),
    )


def fallback_starters(target_name: str) -> List[str]:
    """Generic starters used when the model reply cannot be used."""
    return [
        f"Hey {target_name}! Want to study together?",
        "I saw we share some interests. Want to collaborate?",
        "Looking for a study buddy - interested?",
        "Would love to learn from you!",
    ]


class ResponseReconciler:
    """Validates model replies against the expected structure for each pipeline."""

    def __init__(self, hook: Optional[ReconcilerHook] = None):
        self.hook = hook or LoggingHook()

    def reconcile_matches(self, raw_text: str, pool: Sequence[UserProfile]) -> List[EnrichedMatch]:
        """
        Map a matchmaking reply onto the candidate pool.

        Returns matches in candidate-pool order; ranking is a separate step.
        Malformed entries are skipped one by one. A duplicated index keeps
        its last occurrence.

        Raises:
            ModelParseFailure: if the reply is not JSON or has no "matches" list
        """
        raw = RawModelReply(text=raw_text or "")
        result = parse_model_reply(raw)
        if isinstance(result, ParseFailure):
            self.hook.emit("match_parse_failed", reason=result.reason, raw_text=raw.text)
            raise ModelParseFailure("Failed to parse AI matchmaking results", raw_text=raw.text)

        entries = _extract_list(result.data, "matches")
        if entries is None:
            self.hook.emit("match_parse_failed", reason="missing 'matches' list", raw_text=raw.text)
            raise ModelParseFailure("AI matchmaking results have no matches list", raw_text=raw.text)

        accepted: Dict[int, EnrichedMatch] = {}
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                self.hook.emit("match_entry_invalid", position=position, entry=entry)
                continue

            candidate = coerce_match_candidate(entry)
            index = candidate.candidate_index
            if index is None or not 0 <= index < len(pool):
                self.hook.emit(
                    "match_index_invalid",
                    position=position,
                    candidate_index=entry.get("candidateIndex"),
                    pool_size=len(pool),
                )
                continue

            # From here on the entry is an occurrence of `index`: a later
            # occurrence replaces an earlier one, even when it is then dropped.
            if index in accepted:
                self.hook.emit("match_duplicate_index", candidate_index=index, position=position)
                del accepted[index]

            if candidate.score is None:
                self.hook.emit("match_score_missing", position=position, candidate_index=index)
                continue

            if not passes_threshold(candidate.score):
                self.hook.emit("match_below_threshold", candidate_index=index, score=candidate.score)
                continue

            match_score = clamp_score(candidate.score)
            if not MIN_SCORE <= candidate.score <= MAX_SCORE:
                self.hook.emit("match_score_clamped", candidate_index=index, score=candidate.score, clamped=match_score)

            reason = candidate.reason
            if reason is None:
                self.hook.emit("match_reason_defaulted", candidate_index=index)
                reason = DEFAULT_REASON

            profile = pool[index]
            accepted[index] = EnrichedMatch(
                user_id=profile.id,
                name=profile.name,
                bio=profile.bio,
                interests=list(profile.interests),
                image_url=profile.image_url,
                match_score=match_score,
                match_reason=reason,
            )

        return [accepted[index] for index in sorted(accepted)]

    def reconcile_starters(self, raw_text: str, target: UserProfile) -> List[str]:
        """
        Extract conversation starters, falling back to generic ones.

        Never raises for a bad reply.
        """
        raw = RawModelReply(text=raw_text or "")
        result = parse_model_reply(raw)
        if isinstance(result, ParseFailure):
            self.hook.emit("starters_parse_failed", reason=result.reason, raw_text=raw.text)
            return fallback_starters(target.name)

        items = _extract_list(result.data, "starters")
        if items is None:
            self.hook.emit("starters_parse_failed", reason="missing 'starters' list", raw_text=raw.text)
            return fallback_starters(target.name)

        starters = [s.strip() for s in items if isinstance(s, str) and s.strip()]
        if not starters:
            self.hook.emit("starters_empty", raw_text=raw.text)
            return fallback_starters(target.name)

        return starters[:MAX_STARTERS]
