"""AI delegate used by ai nodes."""

from chatflow.ai.delegate import AIDelegate, AIReply, DSPyDelegate, EchoDelegate, create_delegate

__all__ = ["AIDelegate", "AIReply", "DSPyDelegate", "EchoDelegate", "create_delegate"]
