"""Checks applied to inbound messages and session keys before they reach the engine."""

import re

from chatflow.core.errors import ValidationError

MAX_MESSAGE_LENGTH = 10000
MAX_SESSION_KEY_LENGTH = 255

# Session keys are user ids, phone numbers or widget-generated tokens
SESSION_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_.:@+-]+$")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_user_message(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Strip control characters and surrounding whitespace.

    Empty messages are allowed: a first contact may carry no text.

    Raises:
        ValidationError: If message exceeds max_length
    """
    sanitized = _CONTROL_CHARS.sub("", message or "").strip()
    if len(sanitized) > max_length:
        raise ValidationError(f"Message exceeds maximum length of {max_length} characters")
    return sanitized


def sanitize_session_key(session_key: str, max_length: int = MAX_SESSION_KEY_LENGTH) -> str:
    """Validate a session key.

    Example:
        >>> sanitize_session_key(" +15550001111 ")
        "+15550001111"

        >>> sanitize_session_key("key<script>")
        ValidationError: Invalid session key format
    """
    sanitized = (session_key or "").strip()
    if not sanitized:
        raise ValidationError("Session key cannot be empty")
    if len(sanitized) > max_length:
        raise ValidationError(f"Session key exceeds maximum length of {max_length} characters")
    if not SESSION_KEY_PATTERN.match(sanitized):
        raise ValidationError("Invalid session key format")
    return sanitized


def escape_for_llm_prompt(text: str) -> str:
    """Collapse user text onto one line so it cannot open new prompt sections."""
    flat = re.sub(r"[\r\n]+", " ", text)
    flat = _CONTROL_CHARS.sub("", flat)
    return re.sub(r" {2,}", " ", flat).strip()
