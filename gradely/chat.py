"""
Chatbot handler.

A few phrasings are intercepted as commands (show or update the session
API key, run a folder); everything else is forwarded to the chat model
chain.
"""

import logging
import re
from typing import List, Optional

from pydantic import BaseModel

from gradely.config import load_settings
from gradely.errors import UpstreamError
from gradely.fallback import Caller, run_fallback_chain, with_notice
from gradely.models import SessionConfig
from gradely.providers import call_groq_model
from gradely.session import SessionStore, mask_key

logger = logging.getLogger(__name__)

CHAT_MAX_TOKENS = 512
MIN_KEY_LENGTH = 8

GET_KEY_PATTERNS = [
    re.compile(r"get\s+the\s+current\s+api\s+key.*groq", re.IGNORECASE),
    re.compile(r"^get key .*groq", re.IGNORECASE),
]
SET_KEY_PATTERNS = [
    re.compile(r"update\s+the\s+groq\s+api\s+key\s+to\s+(.+)", re.IGNORECASE),
    re.compile(r"set\s+key\s+groq\s*:\s*(.+)", re.IGNORECASE),
]
RUN_FOLDER_PATTERNS = [
    re.compile(r"^run\b.*\bfolder\b", re.IGNORECASE),
    re.compile(r"run all .* files in the folder", re.IGNORECASE),
]

RUN_FOLDER_REPLY = (
    "Running all executable files requires selecting a folder in the client. "
    "Click the [Send] message, and I will prompt you with a folder selector to proceed."
)


class Intent(BaseModel):
    kind: str  # getKey | setKey | runFolder | query
    text: str = ""
    key: Optional[str] = None


def parse_intent(message: str) -> Intent:
    text = message.strip()

    if any(p.search(text) for p in GET_KEY_PATTERNS):
        return Intent(kind="getKey")

    for pattern in SET_KEY_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            key = re.sub(r"^[\"']|[\"']$", "", match.group(1).strip())
            return Intent(kind="setKey", key=key)

    if any(p.search(text) for p in RUN_FOLDER_PATTERNS):
        return Intent(kind="runFolder")

    return Intent(kind="query", text=text)


def handle_chat(
    message: str,
    sessions: SessionStore,
    session_id: str,
    models: Optional[List[str]] = None,
    caller: Caller = call_groq_model,
) -> str:
    """Return the chatbot reply, raising UpstreamError when every model fails."""
    config = sessions.get(session_id) or SessionConfig()
    intent = parse_intent(message)

    if intent.kind == "getKey":
        masked = mask_key(config.hf_key)
        return f"The current API key for Groq is {masked}. Would you like to update it?"

    if intent.kind == "setKey":
        if not intent.key or len(intent.key) < MIN_KEY_LENGTH:
            return "That key looks invalid. Please provide a valid Groq API key."
        config.hf_key = intent.key
        sessions.set(session_id, config)
        logger.info(f"Session key updated: {mask_key(intent.key)}")
        return "API key updated successfully and is now active for Groq."

    if intent.kind == "runFolder":
        return RUN_FOLDER_REPLY

    settings = load_settings()
    chain = run_fallback_chain(
        models or settings.chat_models,
        intent.text,
        caller,
        max_tokens=CHAT_MAX_TOKENS,
        api_key=config.hf_key or settings.groq_api_key,
    )
    if not chain.ok:
        raise UpstreamError(f"All chat models failed: {chain.error}", info=chain.error)
    return with_notice(chain.notice, chain.text)
