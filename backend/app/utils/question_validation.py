import logging
import re
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Iterable, List, NamedTuple, Optional, Tuple

from pydantic import ValidationError

from app.models.question_models import DIFFICULTIES, GenerationParams, Question

log = logging.getLogger(__name__)

DEFAULT_TIME_LIMITS = {"easy": 15, "medium": 25, "hard": 35}
FALLBACK_TIME_LIMIT = 20
MIN_TIME_LIMIT, MAX_TIME_LIMIT = 5, 60
MIN_TEXT_LENGTH = 10
OPTION_COUNT = 4

MAX_TOPIC_LENGTH = 100
MIN_COUNT, MAX_COUNT = 1, 35


# ─── Candidate repair ──────────────────────────────────────────────────────────

class Rejected(NamedTuple):
    reason: str


def default_time_limit(difficulty: str) -> int:
    return DEFAULT_TIME_LIMITS.get(difficulty, FALLBACK_TIME_LIMIT)


def resolve_correct_option(correct: str, options: List[str]) -> Optional[str]:
    """
    Find the option `correct` refers to: exact text first, then a
    case-insensitive match, then a case-insensitive substring in either
    direction. Returns the option's own text, or None.
    """
    if correct in options:
        return correct

    lowered = correct.lower()
    for opt in options:
        if opt.lower() == lowered:
            return opt

    for opt in options:
        o = opt.lower()
        if lowered in o or o in lowered:
            return opt
    return None


def _clean_options(raw_options: Any) -> Optional[List[str]]:
    if not isinstance(raw_options, list) or len(raw_options) != OPTION_COUNT:
        return None
    cleaned = [str(opt).strip() for opt in raw_options]
    cleaned = [opt for opt in cleaned if opt]
    # duplicates are allowed through; only the count is checked
    if len(cleaned) != OPTION_COUNT:
        return None
    return cleaned


def _time_limit(raw: Any, difficulty: str) -> int:
    if isinstance(raw, Number) and not isinstance(raw, bool) and MIN_TIME_LIMIT <= raw <= MAX_TIME_LIMIT:
        return int(raw)
    return default_time_limit(difficulty)


def repair_candidate(raw: Any, difficulty: str):
    """Turn one untrusted candidate into a Question, or a Rejected with the reason."""
    if not isinstance(raw, dict):
        return Rejected(f"not an object ({type(raw).__name__})")

    text, options, correct = raw.get("text"), raw.get("options"), raw.get("correctOption")
    if not isinstance(text, str) or not isinstance(options, list) or not isinstance(correct, str):
        return Rejected("missing required fields")
    if not correct.strip():
        return Rejected("missing required fields")

    clean_text = text.strip()
    if len(clean_text) < MIN_TEXT_LENGTH:
        return Rejected(f"text too short ({len(clean_text)} chars)")

    clean_options = _clean_options(options)
    if clean_options is None:
        return Rejected(f"expected {OPTION_COUNT} non-empty options, got {options!r}")

    wanted = correct.strip()
    matched = resolve_correct_option(wanted, clean_options)
    if matched is None:
        return Rejected(f"correct option {wanted!r} not among {clean_options!r}")
    if matched != wanted:
        log.warning("Repaired correct option %r -> %r", wanted, matched)

    try:
        return Question(
            text=clean_text,
            options=clean_options,
            correctOption=matched,
            timeLimit=_time_limit(raw.get("timeLimit"), difficulty),
            difficulty=difficulty,
        )
    except ValidationError as e:
        return Rejected(f"schema violation: {e.errors()[0]['msg']}")


# ─── Batch validation ──────────────────────────────────────────────────────────

@dataclass
class ValidationReport:
    questions: List[Question] = field(default_factory=list)
    processed: int = 0
    rejected: int = 0

    @property
    def success_rate(self) -> float:
        if not self.processed:
            return 0.0
        return len(self.questions) / self.processed * 100


def validate_candidates(candidates: Iterable[Any], params: GenerationParams) -> ValidationReport:
    """
    Validate and repair a batch of model candidates. Bad entries are dropped
    and counted, never raised; only a non-iterable `candidates` raises TypeError.
    """
    report = ValidationReport()
    for position, raw in enumerate(iter(candidates), start=1):
        report.processed += 1
        outcome = repair_candidate(raw, params.difficulty)
        if isinstance(outcome, Rejected):
            report.rejected += 1
            log.warning("Candidate %d rejected: %s", position, outcome.reason)
            continue
        report.questions.append(outcome)

    log.info(
        "Validation complete: %d/%d candidates passed (%d rejected, %.1f%%)",
        len(report.questions), report.processed, report.rejected, report.success_rate,
    )
    return report


def validate_questions(candidates: Iterable[Any], params: GenerationParams) -> List[Question]:
    return validate_candidates(candidates, params).questions


# ─── Request / topic checks ────────────────────────────────────────────────────

def validate_generation_request(body: Any) -> List[str]:
    """Every problem with a /generate body, empty when it is acceptable."""
    if not isinstance(body, dict):
        return ["Request body must be a JSON object"]

    errors: List[str] = []
    topic = body.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        errors.append("Topic is required and must be a non-empty string")
    elif len(topic.strip()) > MAX_TOPIC_LENGTH:
        errors.append(f"Topic must be {MAX_TOPIC_LENGTH} characters or less")

    if body.get("difficulty") not in DIFFICULTIES:
        errors.append("Difficulty must be one of: easy, medium, hard")

    count = body.get("count")
    if not isinstance(count, int) or isinstance(count, bool):
        errors.append("Count must be a whole number")
    elif not MIN_COUNT <= count <= MAX_COUNT:
        errors.append(f"Count must be between {MIN_COUNT} and {MAX_COUNT}")

    return errors


class TopicCheck(NamedTuple):
    valid: bool
    suggestion: Optional[str] = None


BLOCKED_TOPIC_TERMS: Tuple[str, ...] = (
    "porn", "nsfw", "gore", "suicide", "self-harm", "terrorism", "bomb making",
    "racist", "slur",
)

_WORD_CHARS = re.compile(r"[^\W\d_]", re.UNICODE)


def validate_topic(topic: str) -> TopicCheck:
    """Shallow appropriateness guard for user-supplied quiz topics."""
    cleaned = (topic or "").strip()
    if not cleaned:
        return TopicCheck(False, "Please enter a topic")
    if len(cleaned) > MAX_TOPIC_LENGTH:
        return TopicCheck(False, f"Please keep the topic under {MAX_TOPIC_LENGTH} characters")
    if len(_WORD_CHARS.findall(cleaned)) < 2:
        return TopicCheck(False, "Please use a topic made of words, e.g. 'Space' or '90s music'")

    lowered = cleaned.lower()
    for term in BLOCKED_TOPIC_TERMS:
        if re.search(rf"\b{re.escape(term)}\b", lowered):
            return TopicCheck(False, "That topic isn't suitable for a trivia game. Try something like 'History' or 'Movies'")
    return TopicCheck(True)
