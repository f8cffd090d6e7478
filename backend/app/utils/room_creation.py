"""
Room creation with a remote-first, local-fallback chain.

    create_room ──► route (flags) ──► remote: health probe ─► POST /api/rooms
                                  │                 │ unhealthy / any error
                                  ▼                 ▼
                                local: validate ─► generate ─► persist room

Only input validation errors and a failure of the local path itself reach
the caller; everything upstream of the local path is recovered.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Sequence, Tuple
from uuid import uuid4

from pydantic import ValidationError

from app.errors import RoomValidationError
from app.models.question_models import DIFFICULTIES, GenerationParams, GenerationResult, Question
from app.models.room_models import Player, Room, RoomCreateResponse
from app.storage.rooms import ROOMS, RoomStore
from app.utils.backend_client import RoomBackendClient
from app.utils.outcome import Outcome, attempt
from app.utils.question_generation import (
    MALFORMED_RESPONSE,
    classify_error_message,
    classify_generation_error,
    generate_questions,
    sample_result,
)
from app.utils.question_validation import MAX_COUNT, MIN_COUNT, validate_topic
from app.utils.room_routing import MigrationFlags, RouteChoice, choose_route, read_migration_flags
from app.utils.sample_bank import slice_or_pad

log = logging.getLogger(__name__)

PLAYER_SESSION_KEY = "userId"
ROOM_CODE_MIN, ROOM_CODE_MAX = 100000, 999999


@dataclass
class RoomCreationDeps:
    store: RoomStore
    backend: RoomBackendClient
    session: MutableMapping[str, str] = field(default_factory=dict)
    generate: Callable[[GenerationParams], GenerationResult] = generate_questions
    read_flags: Callable[[], MigrationFlags] = read_migration_flags
    route: Callable[[MigrationFlags], RouteChoice] = choose_route


def default_deps(session: Optional[MutableMapping[str, str]] = None) -> RoomCreationDeps:
    return RoomCreationDeps(
        store=RoomStore(),
        backend=RoomBackendClient(),
        session=session if session is not None else {},
    )


# ─── Input validation ──────────────────────────────────────────────────────────

def validate_room_inputs(
    nickname: str,
    topic: str,
    difficulty: str,
    question_count: int,
) -> Tuple[str, str]:
    """Raise RoomValidationError for bad input; return the trimmed nickname and topic."""
    nickname = (nickname or "").strip()
    topic = (topic or "").strip()

    if not nickname:
        raise RoomValidationError("Nickname is required")
    if not topic:
        raise RoomValidationError("Topic is required")

    check = validate_topic(topic)
    if not check.valid:
        raise RoomValidationError(check.suggestion or "Invalid topic")

    if difficulty not in DIFFICULTIES:
        raise RoomValidationError("Difficulty must be one of: easy, medium, hard")

    if isinstance(question_count, bool) or not isinstance(question_count, int) \
            or not MIN_COUNT <= question_count <= MAX_COUNT:
        raise RoomValidationError(f"Question count must be between {MIN_COUNT} and {MAX_COUNT}")

    return nickname, topic


def _coerce_questions(questions: Sequence[Any], question_count: int) -> List[Question]:
    if questions is None or len(questions) != question_count:
        received = len(questions) if questions is not None else 0
        raise RoomValidationError(f"Expected {question_count} questions, but received {received}")

    coerced = []
    problems = []
    for i, q in enumerate(questions):
        try:
            coerced.append(q if isinstance(q, Question) else Question.model_validate(q))
        except ValidationError as e:
            problems.append(f"Question {i + 1}: {e.errors()[0]['msg']}")
    if problems:
        raise RoomValidationError("Invalid pre-generated questions", details=problems)
    return coerced


# ─── Room construction ─────────────────────────────────────────────────────────

def _now_ms() -> int:
    return int(time.time() * 1000)


def new_room_code() -> str:
    # uniform over six digits; collisions are not checked
    return str(random.randint(ROOM_CODE_MIN, ROOM_CODE_MAX))


def new_host_id(now_ms: int) -> str:
    return f"host_{now_ms}_{uuid4().hex[:8]}"


def build_room(
    room_id: str,
    nickname: str,
    topic: str,
    difficulty: str,
    questions: List[Question],
    question_count: int,
    ai_generated: bool,
    fallback_reason: Optional[str] = None,
) -> Room:
    now = _now_ms()
    host_id = new_host_id(now)
    host = Player(id=host_id, nickname=nickname, isHost=True, score=0, joinedAt=now, answers={})
    return Room(
        id=room_id,
        roomCode=new_room_code(),
        topic=topic,
        difficulty=difficulty,
        questionCount=question_count,
        status="waiting",
        hostId=host_id,
        createdAt=now,
        currentQuestionIndex=0,
        players={host_id: host},
        questions=questions,
        totalQuestions=question_count,
        isGameComplete=False,
        aiGenerated=ai_generated,
        questionsGenerating=False,
        fallbackReason=fallback_reason,
    )


def _persist_room(deps: RoomCreationDeps, **room_fields) -> Room:
    room_id = deps.store.push(ROOMS)
    try:
        room = build_room(room_id, **room_fields)
        deps.store.update(room_id, room.model_dump(mode="json"))
    except Exception:
        deps.store.delete(room_id)
        raise
    deps.session[PLAYER_SESSION_KEY] = room.host.id
    return room


# ─── Local creation path ───────────────────────────────────────────────────────

def create_room_local(
    nickname: str,
    topic: str,
    difficulty: str,
    question_count: int,
    deps: RoomCreationDeps,
) -> RoomCreateResponse:
    nickname, topic = validate_room_inputs(nickname, topic, difficulty, question_count)
    params = GenerationParams(topic=topic, difficulty=difficulty, count=question_count)

    def _raw_samples(failed: Outcome) -> Outcome:
        log.warning("Question generation failed (%s), using sample questions: %s", failed.reason, failed.error)
        return Outcome.success(sample_result(difficulty, question_count, failed.reason))

    result = attempt(
        lambda: deps.generate(params),
        lambda e: classify_error_message(str(e)),
    ).or_else(_raw_samples).unwrap()
    if not result.questions:
        log.warning("Question generation returned no questions, using sample questions")
        result = sample_result(difficulty, question_count, result.fallbackReason or MALFORMED_RESPONSE)

    questions = slice_or_pad(result.questions, question_count)
    room = _persist_room(
        deps,
        nickname=nickname,
        topic=topic,
        difficulty=difficulty,
        questions=questions,
        ai_generated=result.aiGenerated,
        fallback_reason=result.fallbackReason,
        question_count=question_count,
    )
    log.info(
        "Room %s created locally (%d questions, AI: %s)",
        room.roomCode, len(room.questions), result.aiGenerated,
    )
    return RoomCreateResponse(
        roomId=room.id,
        playerId=room.hostId,
        aiGenerated=result.aiGenerated,
        fallbackReason=result.fallbackReason,
    )


def create_room_local_with_questions(
    nickname: str,
    topic: str,
    difficulty: str,
    question_count: int,
    questions: Sequence[Any],
    deps: RoomCreationDeps,
) -> RoomCreateResponse:
    nickname, topic = validate_room_inputs(nickname, topic, difficulty, question_count)
    prepared = _coerce_questions(questions, question_count)

    room = _persist_room(
        deps,
        nickname=nickname,
        topic=topic,
        difficulty=difficulty,
        questions=prepared,
        ai_generated=True,
        question_count=question_count,
    )
    log.info("Room %s created locally with %d pre-generated questions", room.roomCode, len(prepared))
    return RoomCreateResponse(roomId=room.id, playerId=room.hostId, aiGenerated=True)


# ─── Routing ───────────────────────────────────────────────────────────────────

def _remote_then_local(
    payload: Dict[str, Any],
    deps: RoomCreationDeps,
    local_stage: Callable[[], RoomCreateResponse],
) -> RoomCreateResponse:
    log.info("Attempting room creation via backend")
    health = attempt(deps.backend.is_healthy, classify_generation_error)
    if not (health.ok and health.value):
        log.warning("Backend not healthy (%s), creating room locally", health.reason or "health check failed")
        return local_stage()

    def _remote_stage() -> RoomCreateResponse:
        result = deps.backend.create_room(payload)
        deps.session[PLAYER_SESSION_KEY] = result.playerId
        log.info("Room created via backend: %s", result.roomId)
        return result

    def _local(failed: Outcome) -> Outcome:
        log.warning("Backend room creation failed (%s), creating room locally: %s", failed.reason, failed.error)
        return Outcome.success(local_stage())

    return attempt(_remote_stage, classify_generation_error).or_else(_local).unwrap()


def _remote_payload(nickname, topic, difficulty, question_count, questions=None) -> Dict[str, Any]:
    payload = {
        "nickname": (nickname or "").strip(),
        "topic": (topic or "").strip(),
        "difficulty": difficulty,
        "questionCount": question_count,
    }
    if questions is not None:
        payload["questions"] = [q.model_dump() if isinstance(q, Question) else q for q in questions]
    return payload


def create_room(
    nickname: str,
    topic: str,
    difficulty: str,
    question_count: int,
    deps: RoomCreationDeps,
) -> RoomCreateResponse:
    """Create a room with freshly generated questions, remote first when the flags allow it."""

    def local_stage() -> RoomCreateResponse:
        return create_room_local(nickname, topic, difficulty, question_count, deps)

    if deps.route(deps.read_flags()) is RouteChoice.USE_LOCAL:
        log.info("Creating room locally (default)")
        return local_stage()
    return _remote_then_local(_remote_payload(nickname, topic, difficulty, question_count), deps, local_stage)


def create_room_with_questions(
    nickname: str,
    topic: str,
    difficulty: str,
    question_count: int,
    questions: Sequence[Any],
    deps: RoomCreationDeps,
) -> RoomCreateResponse:
    """Create a room from an already generated question list; no generation happens."""

    def local_stage() -> RoomCreateResponse:
        return create_room_local_with_questions(nickname, topic, difficulty, question_count, questions, deps)

    if deps.route(deps.read_flags()) is RouteChoice.USE_LOCAL:
        log.info("Creating room with pre-generated questions locally (default)")
        return local_stage()
    payload = _remote_payload(nickname, topic, difficulty, question_count, questions)
    return _remote_then_local(payload, deps, local_stage)
