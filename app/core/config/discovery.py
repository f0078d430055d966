from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

_DISCOVERY_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "discovery.yaml"


@dataclass(frozen=True)
class QuizRole:
    title: str
    slug: str
    pattern: str
    style: str


@dataclass(frozen=True)
class QuizNudge:
    pattern: str
    weight: float
    roles: tuple[str, ...]


@dataclass(frozen=True)
class DiscoveryConfig:
    max_questions: int
    stop_confidence: float
    supported_roles: tuple[str, ...]
    aliases: Mapping[str, str]
    keyword_rules: tuple[tuple[str, str], ...]
    quiz_max_answers: int
    quiz_min_score: float
    quiz_roles: tuple[QuizRole, ...]
    quiz_nudges: tuple[QuizNudge, ...]
    non_corporate_pattern: str
    messages: Mapping[str, str]

    def canonical_role(self, title: str | None) -> str | None:
        """Return the supported role spelled as configured, or None if unknown."""
        wanted = (title or "").strip().lower()
        if not wanted:
            return None
        for role in self.supported_roles:
            if role.lower() == wanted:
                return role
        return None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise RuntimeError(
            f"Discovery config not found at '{path}'. "
            "Expected file: config/discovery.yaml"
        )

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read discovery config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in discovery config '{path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid discovery config '{path}': expected a top-level mapping.")
    return parsed


def _section(parsed: dict[str, Any], key: str) -> dict[str, Any]:
    value = parsed.get(key) or {}
    if not isinstance(value, dict):
        raise RuntimeError(f"Invalid discovery config: '{key}' must be a mapping.")
    return value


def build_discovery_config(parsed: dict[str, Any]) -> DiscoveryConfig:
    policy = _section(parsed, "policy")
    matching = _section(parsed, "matching")
    quiz = _section(parsed, "quiz")
    messages = _section(parsed, "messages")

    roles = tuple(str(role).strip() for role in parsed.get("supported_roles") or [] if str(role).strip())
    if not roles:
        raise RuntimeError("Invalid discovery config: 'supported_roles' must not be empty.")

    aliases = {
        str(key).strip().lower(): str(value).strip().lower()
        for key, value in (matching.get("aliases") or {}).items()
    }
    rules: list[tuple[str, str]] = []
    for rule in matching.get("keyword_rules") or []:
        if not isinstance(rule, (list, tuple)) or len(rule) != 2:
            raise RuntimeError(f"Invalid keyword rule {rule!r}: expected [query_keyword, title_keyword].")
        rules.append((str(rule[0]).lower(), str(rule[1]).lower()))

    quiz_roles = tuple(
        QuizRole(
            title=str(item["title"]),
            slug=str(item["slug"]),
            pattern=str(item["pattern"]),
            style=str(item.get("style") or ""),
        )
        for item in quiz.get("roles") or []
    )
    nudges = tuple(
        QuizNudge(
            pattern=str(item["pattern"]),
            weight=float(item.get("weight", 0.5)),
            roles=tuple(str(role) for role in item.get("roles") or []),
        )
        for item in quiz.get("nudges") or []
    )

    return DiscoveryConfig(
        max_questions=int(policy.get("max_questions", 8)),
        stop_confidence=float(policy.get("stop_confidence", 0.75)),
        supported_roles=roles,
        aliases=MappingProxyType(aliases),
        keyword_rules=tuple(rules),
        quiz_max_answers=int(quiz.get("max_answers", 5)),
        quiz_min_score=float(quiz.get("min_score", 1.2)),
        quiz_roles=quiz_roles,
        quiz_nudges=nudges,
        non_corporate_pattern=str(quiz.get("non_corporate_pattern") or ""),
        messages=MappingProxyType({str(key): str(value).strip() for key, value in messages.items()}),
    )


@lru_cache(maxsize=1)
def get_discovery_config() -> DiscoveryConfig:
    """Load config/discovery.yaml once and return the immutable config."""
    return build_discovery_config(_read_yaml(_DISCOVERY_CONFIG_PATH))


def get_message(key: str, **values: str) -> str:
    template = get_discovery_config().messages.get(key, "")
    return template.format(**values) if values else template
