"""Core primitives: errors, constants, condition expressions, input sanitization."""
