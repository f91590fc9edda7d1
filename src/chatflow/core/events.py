"""
Event constants for chatflow.

These constants identify the step-trace events emitted while the
interpreter walks a flow graph.
"""

# A run started from the trigger node
EVENT_RUN_STARTED = "run_started"

# A run resumed at a paused node
EVENT_RUN_RESUMED = "run_resumed"

# A node handler was dispatched
EVENT_NODE_ENTERED = "node_entered"

# Execution moved along an edge
EVENT_TRANSITION = "transition"

# Execution paused waiting for user input
EVENT_PAUSED = "paused"

# The conversation branch ended
EVENT_TERMINATED = "terminated"

# A button reply did not match any option
EVENT_INVALID_SELECTION = "invalid_selection"

# A condition expression was evaluated
EVENT_CONDITION_EVALUATED = "condition_evaluated"

# The AI delegate produced a reply
EVENT_AI_REPLIED = "ai_replied"

# An action node was recorded as executed
EVENT_ACTION_EXECUTED = "action_executed"

# The current node id is not present in the graph
EVENT_BROKEN_REFERENCE = "broken_reference"

# The node type is not understood
EVENT_UNKNOWN_NODE_TYPE = "unknown_node_type"

# MAX_STEPS was exhausted before the run halted
EVENT_STEP_LIMIT_REACHED = "step_limit_reached"

# The graph has no trigger node
EVENT_CONFIGURATION_ERROR = "configuration_error"
