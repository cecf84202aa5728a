"""
Upstream LLM callers.

One caller per provider. Each performs a single request/response cycle
and returns a ProviderResult; network faults, missing credentials and
non-2xx statuses all come back as ok=False with a readable error.
"""

import json
import logging
import re
from typing import Any, List, Optional

import requests

from gradely.config import load_settings
from gradely.models import ProviderResult

logger = logging.getLogger(__name__)

GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
HF_ROUTER_BASE = "https://router.huggingface.co/hf-inference"
HF_LEGACY_BASE = "https://api-inference.huggingface.co"

GROQ_SYSTEM_PROMPT = "You are a helpful coding assistant."

# Response-chaining fields that providers no longer accept
FORBIDDEN_KEYS = ("previous_response_id", "previousResponseId", "previous_response", "prev_response_id")

HF_PERMISSION_ERROR = re.compile(r"does not have sufficient permissions to call Inference Providers", re.IGNORECASE)
HF_PERMISSION_GUIDANCE = (
    "Your HF token likely lacks 'Inference Providers' permission. Edit the token at "
    "https://huggingface.co/settings/tokens and enable Inference Providers, or set a "
    "different token via the chatbot."
)


def sanitize_payload(payload: Any) -> Any:
    """
    Strip forbidden chaining keys from a request payload.

    Nested `payload` and `input` objects are sanitized too. The caller's
    object is never mutated.
    """
    if isinstance(payload, list):
        return list(payload)
    if not isinstance(payload, dict):
        return payload

    copy = {key: value for key, value in payload.items() if key not in FORBIDDEN_KEYS}
    for nested in ("payload", "input"):
        if isinstance(copy.get(nested), (dict, list)):
            copy[nested] = sanitize_payload(copy[nested])
    return copy


# -- Groq -------------------------------------------------------------------

def call_groq_model(
    model: str,
    prompt: str,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
) -> ProviderResult:
    """Call Groq's OpenAI-compatible chat completions endpoint."""
    settings = load_settings()
    key = api_key or settings.groq_api_key
    if not key:
        return ProviderResult(ok=False, error="Missing GROQ_API_KEY in server environment")

    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": GROQ_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "temperature": 0.2,
    }
    if max_tokens:
        body["max_tokens"] = max_tokens
    body = sanitize_payload(body)

    try:
        response = requests.post(
            GROQ_URL,
            json=body,
            headers={
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=settings.upstream_timeout,
        )
    except requests.RequestException as e:
        logger.warning(f"Groq request failed for {model}: {e}")
        return ProviderResult(ok=False, error=f"Failed to call Groq: {e}")

    text = response.text or ""
    if not response.ok:
        logger.warning(f"Groq returned {response.status_code} for {model}")
        return ProviderResult(ok=False, error=f"Groq error {response.status_code}: {text}")

    try:
        data = response.json()
    except ValueError:
        return ProviderResult(ok=True, text=text)

    content = _chat_content(data)
    if content is not None:
        return ProviderResult(ok=True, text=content)
    return ProviderResult(ok=True, text=text)


def _chat_content(data: Any) -> Optional[str]:
    """choices[0].message.content when it is a non-blank string."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, str) and content.strip():
        return content
    return None


# -- Hugging Face response shapes -------------------------------------------

class TextResponse:
    """Endpoint answered with a bare string."""

    kind = "text"

    def __init__(self, payload: str):
        self.payload = payload

    def extract_text(self) -> str:
        return self.payload


class GenerationListResponse:
    """Endpoint answered with a list of generations; texts are joined by newline."""

    kind = "generations"

    def __init__(self, payload: list):
        self.payload = payload

    def extract_text(self) -> str:
        return "\n".join(self._item_text(item) for item in self.payload)

    @staticmethod
    def _item_text(item: Any) -> str:
        if isinstance(item, str):
            return item
        if isinstance(item, dict):
            if item.get("generated_text"):
                return str(item["generated_text"])
            # e.g. {"summary_text": "..."}
            for value in item.values():
                if isinstance(value, str):
                    return value
        return json.dumps(item)


class GeneratedTextResponse:
    """Endpoint answered with an object carrying `generated_text`."""

    kind = "generated_text"

    def __init__(self, payload: dict):
        self.payload = payload

    def extract_text(self) -> str:
        return self.payload["generated_text"]


class OpaqueResponse:
    """Any other object; serialized as a last resort."""

    kind = "opaque"

    def __init__(self, payload: dict):
        self.payload = payload

    def extract_text(self) -> str:
        return json.dumps(self.payload)


def classify_hf_response(payload: Any):
    """Pick the response variant for a decoded HF body, or None if unusable."""
    if isinstance(payload, str):
        return TextResponse(payload)
    if isinstance(payload, list):
        return GenerationListResponse(payload)
    if isinstance(payload, dict):
        if isinstance(payload.get("generated_text"), str):
            return GeneratedTextResponse(payload)
        return OpaqueResponse(payload)
    return None


# -- Hugging Face -----------------------------------------------------------

def hf_endpoints(model: str) -> List[str]:
    """Router endpoints first, then the legacy Inference API."""
    return [
        f"{HF_ROUTER_BASE}/text-generation/models/{model}",
        f"{HF_ROUTER_BASE}/models/{model}",
        f"{HF_LEGACY_BASE}/models/{model}",
    ]


def call_hf_model(
    model: str,
    prompt: str,
    max_new_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
) -> ProviderResult:
    """
    Call a Hugging Face text-generation model.

    Endpoints are tried in order and the first success wins. When all of
    them fail, the first router error is reported in preference to the
    legacy one (legacy tends to answer a generic 410 that hides the
    useful message).
    """
    settings = load_settings()
    key = api_key or settings.huggingface_api_key
    if not key:
        return ProviderResult(ok=False, error="Missing HUGGINGFACE_API_KEY in server environment")

    urls = hf_endpoints(model)
    body = {"inputs": prompt}
    if max_new_tokens:
        body["parameters"] = {"max_new_tokens": max_new_tokens}
    body = sanitize_payload(body)

    headers = {
        "Authorization": f"Bearer {key}",
        "Content-Type": "application/json",
        "x-wait-for-model": "true",
        "Accept": "application/json",
    }

    last_err = ""
    first_router_err = ""
    payload = None
    found = False

    for url in urls:
        try:
            response = requests.post(url, json=body, headers=headers, timeout=settings.upstream_timeout)
        except requests.RequestException as e:
            err = f"HF inference error: {e} (at {url})"
            if not first_router_err and url.startswith(HF_ROUTER_BASE):
                first_router_err = err
            last_err = err
            logger.warning(err)
            continue

        if not response.ok:
            text = response.text or ""
            err = f"HF inference error: {response.status_code} {text} (at {url})"
            if response.status_code == 403 and HF_PERMISSION_ERROR.search(text):
                err = f"{err}. {HF_PERMISSION_GUIDANCE}"
            if not first_router_err and url.startswith(HF_ROUTER_BASE):
                first_router_err = err
            last_err = err
            logger.warning(f"HF endpoint failed with {response.status_code}: {url}")
            continue

        try:
            payload = response.json()
        except ValueError:
            payload = response.text or ""
        found = True
        break

    if not found:
        error = first_router_err or last_err or f"HF inference returned no response. Tried URLs: {', '.join(urls)}"
        return ProviderResult(ok=False, error=error)

    variant = classify_hf_response(payload)
    if variant is None:
        return ProviderResult(ok=False, error="Unknown HF response format")
    return ProviderResult(ok=True, text=variant.extract_text())
