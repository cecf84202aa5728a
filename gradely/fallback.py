"""
Multi-model fallback chain.

Candidates are tried strictly in order, one upstream call at a time,
stopping at the first success.
"""

import logging
from typing import Callable, List, Optional

from gradely.models import ChainResult, FallbackResult, ProviderResult
from gradely.registry import closest_free_model, describe_model

logger = logging.getLogger(__name__)

# (model, prompt, token_limit, api_key) -> ProviderResult
Caller = Callable[[str, str, Optional[int], Optional[str]], ProviderResult]
Selector = Callable[[str], FallbackResult]


def switch_notice(mapped: FallbackResult) -> str:
    return f"[Using free model] {describe_model(mapped.info)}. {mapped.reason or ''}".strip()


def with_notice(notice: str, text: str) -> str:
    """Prepend a model-switch notice to user-visible text."""
    return f"{notice}\n\n{text}" if notice else text


def run_fallback_chain(
    models: List[str],
    prompt: str,
    caller: Caller,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
    selector: Optional[Selector] = closest_free_model,
) -> ChainResult:
    """
    Walk the candidate models until one answers.

    Each candidate is resolved through `selector` first (pass None to call
    ids verbatim). Only the first substitution produces a notice. On
    exhaustion the error names the last failing model.
    """
    notice = ""
    last_err = ""

    for requested in models:
        selected = requested
        if selector is not None:
            mapped = selector(requested)
            selected = mapped.selected
            if mapped.switched and not notice:
                notice = switch_notice(mapped)
                logger.info(f"Model '{requested}' switched to '{selected}'")

        result = caller(selected, prompt, max_tokens, api_key)
        if result.ok:
            logger.info(f"Model {selected} answered")
            return ChainResult(ok=True, text=result.text or "", notice=notice, model=selected)

        last_err = f"{selected}: {result.error or 'Failed'}"
        logger.warning(f"Model {selected} failed, trying next candidate")

    return ChainResult(ok=False, error=last_err or "No models configured", notice=notice)
