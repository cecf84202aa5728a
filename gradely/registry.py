"""
Registry of Groq models assumed to be available on the free tier.

If a requested model is not free (or has been decommissioned), requests
are switched to the closest free equivalent. Update the tables below
when Groq changes availability.
"""

from typing import Optional

from gradely.models import FallbackResult, ModelInfo


FREE_MODELS = {
    "llama-3.1-8b-instant": ModelInfo(
        id="llama-3.1-8b-instant",
        name="Llama 3.1 8B Instant",
        context=8192,
        capability="Fast general reasoning, coding help, summaries.",
    ),
    "mixtral-8x7b-32768": ModelInfo(
        id="mixtral-8x7b-32768",
        name="Mixtral 8x7B (32k)",
        context=32768,
        capability="Stronger reasoning and longer context; good for code analysis.",
    ),
}

# Paid or deprecated ids -> free substitute
EQUIVALENTS = {
    "llama3-8b-8192": "llama-3.1-8b-instant",
    "llama-3.1-70b-versatile": "mixtral-8x7b-32768",
}

DEFAULT_FREE_MODEL = "llama-3.1-8b-instant"


def is_free_model(model_id: str) -> bool:
    return model_id in FREE_MODELS


def closest_free_model(model_id: Optional[str] = None) -> FallbackResult:
    """
    Map a requested model id onto a known-free model.

    Exact free ids pass through unchanged. Registered substitutes win
    next, then the default free model. Never fails.
    """
    requested = (model_id or "").strip()

    direct = FREE_MODELS.get(requested)
    if direct:
        return FallbackResult(selected=requested, switched=False, info=direct)

    mapped = EQUIVALENTS.get(requested)
    if mapped and mapped in FREE_MODELS:
        return FallbackResult(
            selected=mapped,
            switched=True,
            reason=f"Requested model '{requested}' is not free or is deprecated. Switched to '{mapped}'.",
            info=FREE_MODELS[mapped],
        )

    fallback = FREE_MODELS[DEFAULT_FREE_MODEL]
    return FallbackResult(
        selected=fallback.id,
        switched=bool(requested),
        reason=f"Requested model '{requested}' is not free. Switched to '{fallback.id}'." if requested else None,
        info=fallback,
    )


def describe_model(info: ModelInfo) -> str:
    return f"{info.name} (id: {info.id}, context: {info.context}), {info.capability}"
