import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    temperature: float


def load_ai_config() -> AIConfig:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    model = os.getenv("AI_MODEL", "gpt-4o-mini").strip()
    try:
        temperature = float(os.getenv("AI_TEMPERATURE", "0.2"))
    except ValueError:
        temperature = 0.2
    return AIConfig(provider=provider, model=model, temperature=temperature)
