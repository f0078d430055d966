from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from typing import Any, Callable, Protocol, Sequence

from pydantic import ValidationError

from app.ai.types import AIClient
from app.analytics.db import log_discovery_outcome, log_generation_run
from app.core.config.discovery import DiscoveryConfig, get_discovery_config, get_message
from app.prompts.discovery import build_next_action_messages
from app.schemas.catalog import SimulationEntry
from app.schemas.discover import (
    QA,
    AskAction,
    DiscoverNextResponse,
    NotFoundResult,
    QuestionResponse,
    RecommendAction,
    SupportedResult,
    UnsupportedResult,
    action_adapter,
)
from app.services.role_matcher import match_role

logger = logging.getLogger("app.discover")

Action = AskAction | RecommendAction
CatalogLoader = Callable[[], Sequence[SimulationEntry]]


class DiscoveryError(RuntimeError):
    code = "discovery_error"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class InvalidInput(DiscoveryError):
    code = "invalid_input"
    status_code = 422


class MalformedGenerationOutput(DiscoveryError):
    code = "malformed_generation_output"
    status_code = 502


class NextActionGenerator(Protocol):
    async def next_action(self, transcript: Sequence[QA]) -> Action: ...


def _short_hash(value: str | None) -> str:
    normalized = (value or "").strip()
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]


def validate_transcript(qas: Sequence[QA], *, max_questions: int) -> tuple[QA, ...]:
    transcript = tuple(qas or ())
    if len(transcript) > max_questions:
        raise InvalidInput(f"transcript holds {len(transcript)} turns; at most {max_questions} are allowed")
    for idx, qa in enumerate(transcript):
        if not isinstance(qa, QA):
            raise InvalidInput(f"turn {idx} is not a question/answer pair")
        if not qa.q.strip():
            raise InvalidInput(f"turn {idx} has an empty question")
        if not qa.a.strip():
            raise InvalidInput(f"turn {idx} has an empty answer")
    return transcript


def parse_action(raw: str | dict[str, Any] | None) -> Action:
    """Parse generation output into an Ask or Recommend action."""
    if isinstance(raw, dict):
        payload: Any = raw
    else:
        text = (raw or "").strip()
        if not text:
            raise MalformedGenerationOutput("generation returned an empty response", code="empty_response")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedGenerationOutput("generation returned non-JSON output", code="invalid_json") from exc

    if not isinstance(payload, dict):
        raise MalformedGenerationOutput("generation output is not a JSON object", code="invalid_schema")
    try:
        return action_adapter.validate_python(payload)
    except ValidationError as exc:
        raise MalformedGenerationOutput(
            "generation output matches neither the ask nor the recommend shape",
            code="invalid_schema",
        ) from exc


class LLMNextActionGenerator:
    """Asks the language model for the next discovery action, one stateless call per turn."""

    def __init__(self, client: AIClient, config: DiscoveryConfig | None = None):
        self._client = client
        self._config = config or get_discovery_config()

    def _log_run(self, *, run_id: str, schema_valid: bool, status: str, started: float, error_code: str | None = None) -> None:
        try:
            log_generation_run(
                run_id=run_id,
                flow="discover_next",
                model=self._client.model,
                schema_valid=schema_valid,
                status=status,
                error_code=error_code,
                latency_ms=int((time.perf_counter() - started) * 1000),
            )
        except Exception:  # pragma: no cover - analytics must not break discovery
            logger.debug("generation_run_logging_failed", exc_info=True)

    async def next_action(self, transcript: Sequence[QA]) -> Action:
        run_id = uuid.uuid4().hex
        started = time.perf_counter()
        messages = build_next_action_messages(transcript, self._config)
        try:
            raw = await self._client.complete_json(messages)
        except Exception as exc:  # noqa: BLE001 - any provider failure is unusable output
            logger.warning("discover_generation_failed model=%s turns=%s: %s", self._client.model, len(transcript), exc)
            self._log_run(run_id=run_id, schema_valid=False, status="error", started=started, error_code="llm_exception")
            raise MalformedGenerationOutput("generation backend call failed", code="llm_exception") from exc

        try:
            action = parse_action(raw)
        except MalformedGenerationOutput as exc:
            self._log_run(run_id=run_id, schema_valid=False, status="invalid_schema", started=started, error_code=exc.code)
            raise
        self._log_run(run_id=run_id, schema_valid=True, status="success", started=started)
        return action


class DiscoveryController:
    """Decides the next conversational action for a discovery transcript.

    The generator does the judging. The controller validates the transcript
    before any external call and checks what comes back: no question once
    the turn ceiling is reached, supported roles must come from the
    configured role set, and unsupported outcomes always carry guidance.
    """

    def __init__(self, generator: NextActionGenerator, config: DiscoveryConfig | None = None):
        self._generator = generator
        self._config = config or get_discovery_config()

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    async def decide(self, qas: Sequence[QA]) -> Action:
        transcript = validate_transcript(qas, max_questions=self._config.max_questions)
        action = await self._generator.next_action(transcript)
        return self._normalize(transcript, action)

    def _normalize(self, transcript: tuple[QA, ...], action: Action) -> Action:
        if isinstance(action, AskAction):
            if len(transcript) >= self._config.max_questions:
                raise MalformedGenerationOutput(
                    f"generation asked another question after {len(transcript)} turns",
                    code="question_limit_exceeded",
                )
            if not action.question.strip():
                raise MalformedGenerationOutput("generation asked an empty question", code="invalid_schema")
            return action

        if not isinstance(action, RecommendAction):
            raise MalformedGenerationOutput(
                f"generation produced an unknown action type {type(action).__name__}",
                code="invalid_schema",
            )

        if action.status == "unsupported":
            message = (action.message_if_unsupported or "").strip()
            if message:
                return action
            return action.model_copy(update={"message_if_unsupported": get_message("unsupported")})

        role = self._config.canonical_role(action.role_title)
        if role is None:
            raise MalformedGenerationOutput(
                f"generation recommended a role outside the supported set: {action.role_title!r}",
                code="unknown_role",
            )
        if role != action.role_title:
            return action.model_copy(update={"role_title": role})
        return action


def resolve_action(action: Action, catalog_loader: CatalogLoader) -> DiscoverNextResponse:
    """Turn a controller action into the response shape returned to the client."""
    if isinstance(action, AskAction):
        return QuestionResponse(question=action.question)

    if action.status == "unsupported":
        return UnsupportedResult(message=action.message_if_unsupported or get_message("unsupported"))

    role = action.role_title or ""
    match = match_role(role, catalog_loader())
    if match is None:
        return NotFoundResult(role=role, message=get_message("not_found", role=role))
    return SupportedResult(
        role=role,
        slug=match.slug,
        message=action.rationale.strip() or get_message("supported", role=role),
    )


def _log_outcome(result: DiscoverNextResponse, turns: int) -> None:
    if isinstance(result, QuestionResponse):
        return
    try:
        log_discovery_outcome(
            flow="discover_next",
            outcome=result.status,
            role=getattr(result, "role", None),
            slug=getattr(result, "slug", None),
            turns=turns,
        )
    except Exception:  # pragma: no cover - analytics must not break discovery
        logger.debug("discovery_outcome_logging_failed", exc_info=True)


async def run_discovery_turn(
    qas: Sequence[QA],
    *,
    controller: DiscoveryController,
    catalog_loader: CatalogLoader,
) -> DiscoverNextResponse:
    started_at = time.perf_counter()
    try:
        action = await controller.decide(qas)
        result = resolve_action(action, catalog_loader)
    except DiscoveryError as exc:
        logger.warning(
            json.dumps(
                {
                    "event": "discover_error",
                    "code": exc.code,
                    "error": str(exc),
                    "turns": len(qas),
                    "duration_ms": int((time.perf_counter() - started_at) * 1000),
                }
            )
        )
        raise

    _log_outcome(result, len(qas))
    logger.info(
        json.dumps(
            {
                "event": "discover_next",
                "turns": len(qas),
                "type": result.type,
                "status": getattr(result, "status", None),
                "role": getattr(result, "role", None),
                "slug": getattr(result, "slug", None),
                "last_answer_hash": _short_hash(qas[-1].a if qas else None),
                "duration_ms": int((time.perf_counter() - started_at) * 1000),
            }
        )
    )
    return result
