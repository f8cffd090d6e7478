import ast
import json
import logging
import math
import re
from typing import Any, List, Optional

import httpx
import openai

from app import config
from app.errors import MalformedResponseError
from app.models.question_models import GenerationParams, GenerationResult
from app.utils.outcome import Outcome, attempt
from app.utils.prompt_templates import build_trivia_question_prompt
from app.utils.question_validation import validate_candidates
from app.utils.sample_bank import get_sample_questions, slice_or_pad

log = logging.getLogger(__name__)

# Stable, user-facing fallback reasons
SERVICE_NOT_CONFIGURED = "service not configured"
INVALID_CREDENTIALS = "invalid credentials"
RATE_LIMIT_REACHED = "rate limit reached"
QUOTA_EXCEEDED = "quota exceeded"
NETWORK_ERROR = "network error"
MALFORMED_RESPONSE = "malformed response"
GENERIC_FAILURE = "generic generation failure"

BUFFER_PERCENT = 10

_client: Optional[openai.OpenAI] = None


def get_openai_client() -> openai.OpenAI:
    global _client
    if _client is None:
        api_key = config.openai_api_key()
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set. Add it to your .env file.")
        _client = openai.OpenAI(api_key=api_key)
    return _client


def buffer_count(count: int) -> int:
    """How many questions to ask the model for, so validation losses still leave `count`."""
    # percent, not a 1.1 factor: ceil(10 * 1.1) is 12
    return math.ceil(count * (100 + BUFFER_PERCENT) / 100)


# ─── Response handling ─────────────────────────────────────────────────────────

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


def strip_code_fences(raw: str) -> str:
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", raw.strip())).strip()


def check_completion(response: Any) -> str:
    """Return the text of the first choice, or raise MalformedResponseError."""
    choices = getattr(response, "choices", None)
    if not choices:
        raise MalformedResponseError("Model response had no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise MalformedResponseError("Model response had no message content")
    return content


def _unwrap_list(data: Any) -> List[Any]:
    # Case 1: already a list
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        # Case 2: {"questions": [...]}
        if isinstance(data.get("questions"), list):
            return data["questions"]
        # Case 3: a single question object
        if "text" in data and "options" in data:
            return [data]
        # Case 4: one-key dict whose value is a list
        if len(data) == 1:
            only_val = next(iter(data.values()))
            if isinstance(only_val, list):
                return only_val

    raise MalformedResponseError(f"Expected a JSON array of questions, got {type(data).__name__}")


def parse_candidates(content: str) -> List[Any]:
    """
    Parse the model's text into a list of candidate question objects.
    Code fences are stripped first; JSON is tried before a Python literal.
    """
    cleaned = strip_code_fences(content)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as json_error:
        try:
            data = ast.literal_eval(cleaned)
        except (ValueError, SyntaxError):
            raise MalformedResponseError(f"Invalid JSON format in model response: {json_error}") from json_error
    return _unwrap_list(data)


# ─── Failure classification ────────────────────────────────────────────────────

def classify_generation_error(error: BaseException) -> str:
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return INVALID_CREDENTIALS
    if isinstance(error, openai.RateLimitError):
        code = getattr(error, "code", None)
        if code == "insufficient_quota" or "quota" in str(error).lower():
            return QUOTA_EXCEEDED
        return RATE_LIMIT_REACHED
    # APITimeoutError is an APIConnectionError
    if isinstance(error, (openai.APIConnectionError, httpx.TransportError, ConnectionError, TimeoutError)):
        return NETWORK_ERROR
    if isinstance(error, (MalformedResponseError, json.JSONDecodeError)):
        return MALFORMED_RESPONSE
    return classify_error_message(str(error))


def classify_error_message(message: str) -> str:
    """Classify an error by its message alone, for errors with no useful type."""
    text = (message or "").lower()
    if "api key" in text or "credential" in text or "unauthorized" in text:
        return INVALID_CREDENTIALS
    if "not configured" in text or "not set" in text:
        return SERVICE_NOT_CONFIGURED
    if "quota" in text:
        return QUOTA_EXCEEDED
    if "rate limit" in text:
        return RATE_LIMIT_REACHED
    if any(word in text for word in ("network", "fetch", "connection", "enotfound", "timed out", "timeout")):
        return NETWORK_ERROR
    if "json" in text or "malformed" in text or "no valid questions" in text:
        return MALFORMED_RESPONSE
    return GENERIC_FAILURE


# ─── Orchestration ─────────────────────────────────────────────────────────────

def sample_result(difficulty: str, count: int, reason: Optional[str]) -> GenerationResult:
    questions = slice_or_pad(get_sample_questions(difficulty), count)
    return GenerationResult(questions=questions, aiGenerated=False, fallbackReason=reason)


def _generate_with_model(params: GenerationParams, client: Any) -> GenerationResult:
    requested = params.count
    requested_with_buffer = buffer_count(requested)
    log.info(
        "Requesting %d questions from the model (target: %d, buffer: %d)",
        requested_with_buffer, requested, requested_with_buffer - requested,
    )

    prompt = build_trivia_question_prompt(params.topic, params.difficulty, requested_with_buffer)
    response = client.chat.completions.create(
        model=config.OPENAI_MODEL,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=config.OPENAI_MAX_TOKENS,
        temperature=config.OPENAI_TEMPERATURE,
    )
    content = check_completion(response)
    log.debug("Raw model response length: %d", len(content))

    report = validate_candidates(parse_candidates(content), params)
    if not report.questions:
        raise MalformedResponseError("No valid questions generated by the model")

    questions = list(report.questions)
    survivors = len(questions)
    if survivors < requested:
        log.warning("Only %d valid questions generated, needed %d; padding with samples", survivors, requested)
        questions.extend(slice_or_pad(get_sample_questions(params.difficulty), requested - survivors))

    ai_generated = survivors >= requested
    log.info(
        "Generated %d questions (%s)",
        requested, "all from the model" if ai_generated else "model + samples",
    )
    return GenerationResult(questions=questions[:requested], aiGenerated=ai_generated)


def generate_questions(params: GenerationParams, client: Any = None) -> GenerationResult:
    """
    Generate `params.count` questions, from the model when one is configured and
    from the sample bank otherwise. Model failures never escape: they come back
    as a sample-bank result with `aiGenerated=False` and a classified reason.
    """
    log.info("Generating %d %s questions about %r", params.count, params.difficulty, params.topic)

    if client is None and not config.openai_configured():
        log.warning("Model not configured, using sample questions")
        return sample_result(params.difficulty, params.count, SERVICE_NOT_CONFIGURED)

    def _model_stage() -> GenerationResult:
        return _generate_with_model(params, client or get_openai_client())

    def _sample_stage(failed: Outcome) -> Outcome:
        log.error("Model generation failed (%s): %s", failed.reason, failed.error)
        return Outcome.success(sample_result(params.difficulty, params.count, failed.reason))

    return attempt(_model_stage, classify_generation_error).or_else(_sample_stage).unwrap()
