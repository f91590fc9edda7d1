"""Flow interpreter: node handlers, step loop and reply assembly."""
