"""Core chatflow errors."""


class ChatflowError(Exception):
    """Base class for all chatflow errors."""

    pass


class ConfigError(ChatflowError):
    """Raised when application configuration is invalid."""


class GraphLoadError(ChatflowError):
    """Raised when a flow graph document cannot be parsed."""

    pass


class FlowConfigurationError(ChatflowError):
    """Raised when a flow graph cannot be started (e.g. no trigger node)."""

    pass


class BrokenGraphReference(ChatflowError):
    """Raised when the interpreter follows an id that names no node."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node {node_id!r} not found in graph")
        self.node_id = node_id


class ExpressionError(ChatflowError):
    """Raised when a condition expression cannot be parsed or evaluated."""

    pass


class DelegateError(ChatflowError):
    """Raised by AI providers. Never escapes the delegate."""

    pass


class FlowNotFoundError(ChatflowError):
    """Raised when a flow graph does not exist for the caller."""

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Flow {flow_id!r} not found")
        self.flow_id = flow_id


class StateError(ChatflowError):
    """Raised when session storage is unavailable or corrupt."""

    pass


class SessionConflictError(StateError):
    """Raised when a session was modified concurrently and retries ran out."""

    pass


class ValidationError(ChatflowError):
    """Raised when request input fails validation."""

    pass
