"""Core constants and enums."""

from enum import Enum

MAX_STEPS = 50
MAX_CONFLICT_RETRIES = 3

DEFAULT_SESSION_KEY = "web-session"

TRIGGER_MISSING_MESSAGE = "Bot configuration error: Trigger node missing."
INVALID_SELECTION_MESSAGE = "❌ Invalid selection. Please choose one of the available options."
FALLBACK_REPLY = "No response configured."

DEFAULT_MESSAGE_TEXT = "Hello"
DEFAULT_BUTTON_TEXT = "Choose an option:"
DEFAULT_AI_PROMPT = "You are a helpful assistant."
DEFAULT_ACTION_METHOD = "POST"

# Messages are joined with a blank line between them
MESSAGE_SEPARATOR = "\n\n"


class NodeType(str, Enum):
    """Node types understood by the interpreter."""

    TRIGGER = "trigger"
    MESSAGE = "message"
    IMAGE = "image"
    BUTTON_MESSAGE = "buttonMessage"
    CONDITION = "condition"
    AI = "ai"
    ACTION = "action"


class Branch(str, Enum):
    """Branch flags carried by condition edges."""

    TRUE = "true"
    FALSE = "false"

    @classmethod
    def of(cls, result: bool) -> "Branch":
        return cls.TRUE if result else cls.FALSE
