import httpx
import pytest

from app.errors import RemoteBackendError, RoomValidationError
from app.models.question_models import GenerationResult
from app.models.room_models import Room
from app.utils.room_creation import (
    PLAYER_SESSION_KEY,
    create_room,
    create_room_local,
    create_room_with_questions,
)
from app.utils.room_routing import MigrationFlags
from app.utils.backend_client import RoomBackendClient
from app.utils.sample_bank import get_sample_questions, slice_or_pad

from conftest import FakeBackend

REMOTE = MigrationFlags(use_backend=True)


class RecordingGenerator:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return GenerationResult(questions=slice_or_pad(get_sample_questions(params.difficulty), params.count), aiGenerated=True)


def stored_room(store, room_id):
    return Room.model_validate(store.get(room_id))


# ─── Local path ────────────────────────────────────────────────────────────────

def test_local_room_has_a_single_waiting_host(make_deps, store):
    generate = RecordingGenerator()
    deps = make_deps(generate=generate)

    result = create_room("  Ada ", " Space ", "medium", 7, deps)

    room = stored_room(store, result.roomId)
    hosts = [p for p in room.players.values() if p.isHost]
    assert len(room.players) == 1 and len(hosts) == 1
    assert hosts[0].id == result.playerId == room.hostId
    assert hosts[0].nickname == "Ada"
    assert hosts[0].score == 0 and hosts[0].answers == {}
    assert room.status == "waiting"
    assert room.currentQuestionIndex == 0
    assert len(room.questions) == room.questionCount == room.totalQuestions == 7
    assert room.topic == "Space"
    assert room.isGameComplete is False
    assert room.id == result.roomId
    assert deps.session[PLAYER_SESSION_KEY] == result.playerId
    assert result.aiGenerated is True
    assert generate.calls[0].topic == "Space" and generate.calls[0].count == 7


def test_room_code_is_six_digits(make_deps, store):
    deps = make_deps(generate=RecordingGenerator())
    for _ in range(5):
        room = stored_room(store, create_room("Ada", "Space", "easy", 1, deps).roomId)
        assert room.roomCode.isdigit() and 100000 <= int(room.roomCode) <= 999999


@pytest.mark.parametrize("count", [0, 36, -1])
def test_out_of_range_count_fails_before_any_work(make_deps, store, count):
    generate = RecordingGenerator()
    deps = make_deps(generate=generate)
    with pytest.raises(RoomValidationError):
        create_room("Ada", "Space", "easy", count, deps)
    assert generate.calls == []
    assert store.pushed == []
    assert PLAYER_SESSION_KEY not in deps.session


@pytest.mark.parametrize(
    "nickname,topic",
    [("", "Space"), ("   ", "Space"), ("Ada", ""), ("Ada", "!!"), ("Ada", "nsfw memes")],
)
def test_bad_nickname_or_topic_is_fatal(make_deps, store, nickname, topic):
    generate = RecordingGenerator()
    with pytest.raises(RoomValidationError):
        create_room(nickname, topic, "easy", 5, make_deps(generate=generate))
    assert generate.calls == []
    assert store.pushed == []


def test_generator_failure_falls_back_to_samples(make_deps, store):
    deps = make_deps(generate=RecordingGenerator(error=RuntimeError("network request failed")))
    result = create_room_local("Ada", "Space", "hard", 8, deps)

    assert result.aiGenerated is False
    assert result.fallbackReason == "network error"
    room = stored_room(store, result.roomId)
    bank = get_sample_questions("hard")
    assert room.questions == bank + bank[:3]


def test_short_generation_is_padded_by_cycling(make_deps, store):
    easy = get_sample_questions("easy")
    short = GenerationResult.model_construct(questions=easy[:2], aiGenerated=False, fallbackReason=None)
    result = create_room_local("Ada", "Space", "easy", 5, make_deps(generate=RecordingGenerator(result=short)))

    room = stored_room(store, result.roomId)
    assert room.questions == [easy[0], easy[1], easy[0], easy[1], easy[0]]


def test_empty_generation_still_fills_the_room(make_deps, store):
    empty = GenerationResult(questions=[], aiGenerated=False)
    result = create_room_local("Ada", "Space", "easy", 4, make_deps(generate=RecordingGenerator(result=empty)))

    room = stored_room(store, result.roomId)
    assert len(room.questions) == room.questionCount == room.totalQuestions == 4
    assert room.questions == slice_or_pad(get_sample_questions("easy"), 4)
    assert result.aiGenerated is False
    assert result.fallbackReason == "malformed response"


def test_failed_room_write_leaves_no_empty_record(make_deps, store, monkeypatch):
    def broken_update(key, fields):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store, "update", broken_update)
    deps = make_deps(generate=RecordingGenerator())

    with pytest.raises(RuntimeError):
        create_room_local("Ada", "Space", "easy", 2, deps)

    assert len(store.pushed) == 1
    assert store.get(store.pushed[0]) is None
    assert PLAYER_SESSION_KEY not in deps.session


def test_fallback_reason_from_generator_is_passed_through(make_deps, no_openai):
    # default generator with no model configured
    deps = make_deps()
    result = create_room("Ada", "Space", "easy", 3, deps)
    assert result.aiGenerated is False
    assert result.fallbackReason == "service not configured"


# ─── Remote routing ────────────────────────────────────────────────────────────

def test_local_flags_never_touch_the_backend(make_deps):
    backend = FakeBackend(healthy=True)
    create_room("Ada", "Space", "easy", 2, make_deps(backend=backend, generate=RecordingGenerator()))
    assert backend.health_checks == 0
    assert backend.create_calls == []


def test_unhealthy_backend_is_never_called(make_deps, store):
    backend = FakeBackend(healthy=False)
    deps = make_deps(backend=backend, generate=RecordingGenerator(), flags=REMOTE)

    result = create_room("Ada", "Space", "easy", 3, deps)

    assert backend.health_checks == 1
    assert backend.create_calls == []
    assert store.get(result.roomId) is not None


def test_healthy_backend_result_is_returned_unmodified(make_deps, store):
    backend = FakeBackend(healthy=True)
    generate = RecordingGenerator()
    deps = make_deps(backend=backend, generate=generate, flags=REMOTE)

    result = create_room(" Ada ", " Space ", "medium", 4, deps)

    assert result == backend.result
    assert backend.create_calls == [{"nickname": "Ada", "topic": "Space", "difficulty": "medium", "questionCount": 4}]
    assert deps.session[PLAYER_SESSION_KEY] == "remote-player"
    assert generate.calls == []
    assert store.pushed == []


@pytest.mark.parametrize(
    "error",
    [RemoteBackendError("500", status_code=500), httpx.ConnectError("refused"), ValueError("bad body")],
)
def test_backend_failure_after_healthy_check_falls_back(make_deps, store, error):
    backend = FakeBackend(healthy=True, error=error)
    deps = make_deps(backend=backend, generate=RecordingGenerator(), flags=REMOTE)

    result = create_room("Ada", "Space", "easy", 3, deps)

    assert len(backend.create_calls) == 1
    assert result.roomId in store.pushed
    assert deps.session[PLAYER_SESSION_KEY] == result.playerId


def raising_backend(exc):
    def handler(request):
        raise exc

    return RoomBackendClient("http://rooms.internal", transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "backend",
    [
        RoomBackendClient("http://[::1"),
        raising_backend(RuntimeError("proxy exploded")),
    ],
    ids=["invalid-url", "transport-error"],
)
def test_broken_health_check_falls_back_to_local(make_deps, store, backend):
    deps = make_deps(backend=backend, generate=RecordingGenerator(), flags=REMOTE)

    result = create_room("Ada", "Space", "easy", 3, deps)

    assert result.roomId in store.pushed
    assert len(stored_room(store, result.roomId).questions) == 3
    assert deps.session[PLAYER_SESSION_KEY] == result.playerId


def test_validation_error_on_fallback_is_still_fatal(make_deps, store):
    backend = FakeBackend(healthy=True, error=RemoteBackendError("400", status_code=400))
    deps = make_deps(backend=backend, generate=RecordingGenerator(), flags=REMOTE)
    with pytest.raises(RoomValidationError):
        create_room("Ada", "Space", "easy", 0, deps)
    assert store.pushed == []


# ─── Pre-generated questions ───────────────────────────────────────────────────

def test_with_questions_builds_room_without_generating(make_deps, store):
    generate = RecordingGenerator()
    questions = [q.model_dump() for q in get_sample_questions("medium")[:3]]
    deps = make_deps(generate=generate)

    result = create_room_with_questions("Ada", "Chemistry", "medium", 3, questions, deps)

    assert result.aiGenerated is True
    assert result.fallbackReason is None
    assert generate.calls == []
    room = stored_room(store, result.roomId)
    assert [q.text for q in room.questions] == [q["text"] for q in questions]
    assert room.questionsGenerating is False


def test_with_questions_count_mismatch_is_fatal(make_deps, store):
    questions = [q.model_dump() for q in get_sample_questions("easy")[:2]]
    with pytest.raises(RoomValidationError) as exc:
        create_room_with_questions("Ada", "Space", "easy", 3, questions, make_deps())
    assert "Expected 3 questions, but received 2" in str(exc.value)
    assert store.pushed == []


def test_with_questions_rejects_broken_question(make_deps, store):
    questions = [{"text": "Is this a real question?", "options": ["a", "b"], "correctOption": "a", "timeLimit": 10, "difficulty": "easy"}]
    with pytest.raises(RoomValidationError):
        create_room_with_questions("Ada", "Space", "easy", 1, questions, make_deps())
    assert store.pushed == []


def test_with_questions_goes_remote_with_questions_in_payload(make_deps, store):
    backend = FakeBackend(healthy=True)
    questions = get_sample_questions("easy")[:2]
    deps = make_deps(backend=backend, flags=REMOTE)

    result = create_room_with_questions("Ada", "Space", "easy", 2, questions, deps)

    assert result == backend.result
    [payload] = backend.create_calls
    assert payload["questions"] == [q.model_dump() for q in questions]
    assert store.pushed == []
