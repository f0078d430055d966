from __future__ import annotations

import json
import logging
import re
import time
import uuid
from typing import Any, Sequence

from app.ai.types import AIClient
from app.analytics.db import log_discovery_outcome, log_generation_run
from app.core.config.discovery import DiscoveryConfig, get_discovery_config, get_message
from app.prompts.discovery import build_quiz_messages
from app.schemas.discover import QuizAnswer, QuizResult

logger = logging.getLogger(__name__)


def compact_answers(answers: Sequence[QuizAnswer], *, limit: int) -> list[str]:
    ordered = sorted(answers, key=lambda item: item.index)
    return [item.answer for item in ordered][:limit]


def heuristic_recommendation(answers: Sequence[str], *, config: DiscoveryConfig | None = None) -> QuizResult:
    """Keyword-bucket recommendation used when the language model is unavailable."""
    cfg = config or get_discovery_config()
    text = " ".join(answers).lower()

    scores: dict[str, float] = {role.title: 0.0 for role in cfg.quiz_roles}
    for role in cfg.quiz_roles:
        if re.search(role.pattern, text):
            scores[role.title] += 2
    for nudge in cfg.quiz_nudges:
        if re.search(nudge.pattern, text):
            for title in nudge.roles:
                if title in scores:
                    scores[title] += nudge.weight

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    best_title, best_score = ranked[0] if ranked else (cfg.quiz_roles[0].title, 0.0)

    if (
        best_score < cfg.quiz_min_score
        and cfg.non_corporate_pattern
        and re.search(cfg.non_corporate_pattern, text)
    ):
        return QuizResult(status="unsupported", message=get_message("quiz_unsupported"))

    role = next(item for item in cfg.quiz_roles if item.title == best_title)
    return QuizResult(
        status="supported",
        role=role.title,
        slug=role.slug,
        message=f"You lean {role.style}. Try a short {role.title} simulation to see how it feels.",
    )


def _valid_llm_result(payload: Any) -> QuizResult | None:
    if not isinstance(payload, dict) or not isinstance(payload.get("message"), str):
        return None
    status = payload.get("status")
    if status == "unsupported":
        return QuizResult(status="unsupported", message=payload["message"])
    if status == "supported" and isinstance(payload.get("role"), str) and isinstance(payload.get("slug"), str):
        return QuizResult(
            status="supported",
            role=payload["role"],
            slug=payload["slug"],
            message=payload["message"],
        )
    return None


async def _llm_recommendation(client: AIClient, answers: list[str], cfg: DiscoveryConfig) -> QuizResult | None:
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    status = "success"
    error_code = None
    result = None
    try:
        raw = await client.complete_json(build_quiz_messages(answers, cfg.quiz_roles))
        result = _valid_llm_result(json.loads(raw or "{}"))
        if result is None:
            status, error_code = "invalid_schema", "invalid_schema"
    except Exception as exc:  # noqa: BLE001 - heuristic fallback is expected
        logger.warning("quiz_llm_failed model=%s answers=%s: %s", client.model, len(answers), exc)
        status, error_code = "error", "llm_exception"

    try:
        log_generation_run(
            run_id=run_id,
            flow="discover_quiz",
            model=client.model,
            schema_valid=result is not None,
            status=status,
            error_code=error_code,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
    except Exception:  # pragma: no cover - analytics must not break discovery
        logger.debug("generation_run_logging_failed", exc_info=True)
    return result


async def recommend_from_quiz(
    answers: Sequence[QuizAnswer],
    *,
    client: AIClient | None,
    config: DiscoveryConfig | None = None,
) -> QuizResult:
    cfg = config or get_discovery_config()
    compact = compact_answers(answers, limit=cfg.quiz_max_answers)

    result = None
    if client is not None:
        result = await _llm_recommendation(client, compact, cfg)
    source = "llm" if result is not None else "heuristic"
    if result is None:
        result = heuristic_recommendation(compact, config=cfg)

    logger.info(
        json.dumps(
            {
                "event": "discover_quiz",
                "answers": len(compact),
                "source": source,
                "status": result.status,
                "role": result.role,
            }
        )
    )
    try:
        log_discovery_outcome(
            flow="discover_quiz",
            outcome=result.status,
            role=result.role,
            slug=result.slug,
            turns=len(compact),
        )
    except Exception:  # pragma: no cover - analytics must not break discovery
        logger.debug("discovery_outcome_logging_failed", exc_info=True)
    return result
