"""
Runtime configuration.

Everything comes from environment variables (optionally loaded from a
.env file by the entry points). Settings are read at call time so a
changed environment takes effect without a restart.
"""

import logging
import math
import os
from typing import List, Optional

from pydantic import BaseModel, Field


DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_GROQ_SECONDARY = "mixtral-8x7b-32768"

DEFAULT_HF_SELFTEST_MODELS = [
    "HuggingFaceH4/zephyr-7b-beta",
    "mistralai/Mistral-7B-Instruct-v0.2",
    "bigcode/starcoder2-7b",
    "bigcode/starcoder2-3b",
    "bigcode/starcoder2-3b",
]


def _env(name: str, default: str) -> str:
    return os.getenv(name) or default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_positive_float(name: str, default: float) -> float:
    """Positive finite float from the environment, else `default`."""
    try:
        value = float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return value


def _env_log_level(name: str, default: str) -> str:
    level = _env(name, default).strip().upper()
    # getLevelName maps unknown names to a "Level X" string
    return level if isinstance(logging.getLevelName(level), int) else default


class Settings(BaseModel):
    """Resolved configuration for one request."""

    groq_api_key: Optional[str] = None
    huggingface_api_key: Optional[str] = None

    review_models: List[str] = Field(default_factory=list)
    assistant_models: List[str] = Field(default_factory=list)
    chat_models: List[str] = Field(default_factory=list)
    submission_models: List[str] = Field(default_factory=list)
    hf_selftest_models: List[str] = Field(default_factory=list)

    upstream_timeout: float = Field(60.0, gt=0)
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY") or None,
        review_models=[
            _env("REVIEW_PRIMARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("REVIEW_SECONDARY_MODEL", DEFAULT_GROQ_SECONDARY),
            _env("REVIEW_TERTIARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("REVIEW_QUATERNARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("REVIEW_FALLBACK_MODEL", DEFAULT_GROQ_MODEL),
        ],
        assistant_models=[
            _env("ASSISTANT_PRIMARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("ASSISTANT_SECONDARY_MODEL", DEFAULT_GROQ_SECONDARY),
            _env("ASSISTANT_TERTIARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("ASSISTANT_FALLBACK_MODEL", DEFAULT_GROQ_MODEL),
        ],
        chat_models=[
            _env("CHAT_PRIMARY_MODEL", DEFAULT_GROQ_MODEL),
            _env("CHAT_SECONDARY_MODEL", DEFAULT_GROQ_SECONDARY),
            _env("CHAT_FALLBACK_MODEL", DEFAULT_GROQ_MODEL),
        ],
        submission_models=[
            _env("SUBMISSION_PRIMARY_MODEL", "bigcode/starcoder2-7b"),
            _env("SUBMISSION_FALLBACK_MODEL", "openai-community/gpt2"),
        ],
        hf_selftest_models=_env_list("HF_SELFTEST_MODELS", DEFAULT_HF_SELFTEST_MODELS),
        upstream_timeout=_env_positive_float("GRADELY_UPSTREAM_TIMEOUT", 60.0),
        log_level=_env_log_level("GRADELY_LOG_LEVEL", "INFO"),
    )
