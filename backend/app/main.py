import logging
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import cors_origins
from app.db.session import init_db
from app.errors import RoomValidationError
from app.logging_config import configure_logging
from app.models.question_models import DIFFICULTIES, ErrorResponse, GenerationParams, GenerationResult
from app.models.room_models import RoomCreateRequest, RoomCreateResponse
from app.storage.rooms import RoomStore
from app.utils.question_generation import generate_questions
from app.utils.question_validation import validate_generation_request
from app.utils.room_creation import (
    PLAYER_SESSION_KEY,
    RoomCreationDeps,
    create_room,
    create_room_with_questions,
    default_deps,
)
from app.utils.sample_bank import get_sample_questions

configure_logging()
log = logging.getLogger("trivia.api")

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

app = FastAPI(title="Trivia Backend")

origins = cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    # browsers reject "*" with credentials
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, error: str, details: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [f"{'.'.join(str(p) for p in e['loc'][1:])}: {e['msg']}" for e in exc.errors()]
    return error_response(400, "Validation failed", details)


@app.exception_handler(RoomValidationError)
async def room_validation_handler(request: Request, exc: RoomValidationError):
    return error_response(400, str(exc), exc.details)


@app.on_event("startup")
def create_tables():
    init_db()


def get_room_store() -> RoomStore:
    return RoomStore()


def get_room_deps() -> RoomCreationDeps:
    # fresh session mapping per request
    return default_deps(session={})


# Routes
@app.get("/", include_in_schema=False)
def root_get():
    return {"ok": True, "service": "trivia-backend", "docs": "/docs"}


@app.head("/", include_in_schema=False)
def root_head():
    return Response(status_code=200)


@app.get("/healthz", include_in_schema=False)
@app.get("/health", include_in_schema=False)
def health_get():
    return {"ok": True}


@app.post("/api/questions/generate", response_model=GenerationResult, response_model_exclude_none=True, responses=ERROR_RESPONSES)
def generate(body: Dict[str, Any] = Body(...)):
    log.info("Question generation request: %s", body)
    errors = validate_generation_request(body)
    if errors:
        return error_response(400, "Validation failed", errors)

    params = GenerationParams(
        topic=body["topic"].strip(),
        difficulty=body["difficulty"],
        count=body["count"],
    )
    try:
        result = generate_questions(params)
    except Exception as e:
        log.exception("Error in question generation endpoint")
        return error_response(500, "Failed to generate questions", str(e))

    log.info("Question generation complete: %d questions, AI: %s", len(result.questions), result.aiGenerated)
    return result


@app.get("/api/questions/sample/{difficulty}", response_model=GenerationResult, responses={400: {"model": ErrorResponse}})
def sample_questions(difficulty: str):
    if difficulty not in DIFFICULTIES:
        return error_response(400, "Invalid difficulty level", ["Difficulty must be one of: easy, medium, hard"])
    return GenerationResult(
        questions=get_sample_questions(difficulty),
        aiGenerated=False,
        fallbackReason="Sample questions requested",
    )


@app.post("/api/rooms", response_model=RoomCreateResponse, response_model_exclude_none=True, responses=ERROR_RESPONSES)
def create_room_route(
    req: RoomCreateRequest,
    response: Response,
    deps: RoomCreationDeps = Depends(get_room_deps),
):
    try:
        if req.questions is not None:
            result = create_room_with_questions(
                req.nickname, req.topic, req.difficulty, req.questionCount, req.questions, deps
            )
        else:
            result = create_room(req.nickname, req.topic, req.difficulty, req.questionCount, deps)
    except RoomValidationError:
        raise
    except Exception as e:
        log.exception("Room creation failed on every path")
        return error_response(500, "Failed to create room", str(e))

    player_id = deps.session.get(PLAYER_SESSION_KEY)
    if player_id:
        response.set_cookie(key=PLAYER_SESSION_KEY, value=player_id, samesite="lax", httponly=True)
    return result


@app.get("/api/rooms/{room_id}")
def get_room(room_id: str, store: RoomStore = Depends(get_room_store)):
    room = store.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room
