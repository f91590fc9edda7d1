"""Flow graph models.

Node payloads are a tagged union keyed by node ``type`` and are validated
once, when the graph is loaded. Nodes of a type the interpreter does not
know are kept as ``UnknownNode`` so execution can stop on them cleanly.
"""

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from chatflow.core.constants import (
    DEFAULT_ACTION_METHOD,
    DEFAULT_AI_PROMPT,
    DEFAULT_BUTTON_TEXT,
    DEFAULT_MESSAGE_TEXT,
    NodeType,
)


def _str_or(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _id_to_str(value: Any) -> Any:
    # YAML reads `id: 1` as an int
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


GraphId = Annotated[str, BeforeValidator(_id_to_str)]


class MediaItem(BaseModel):
    """An image attached to a message or image node."""

    url: str = Field(description="Public URL of the media file")
    caption: str = Field(default="", description="Optional caption")

    @field_validator("caption", mode="before")
    @classmethod
    def _coerce_caption(cls, v: Any) -> str:
        return _str_or(v)


def _media_list(value: Any) -> list[dict[str, Any]]:
    """Keep only well-formed media entries with a non-empty url."""
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if isinstance(item, dict) and isinstance(item.get("url"), str) and item["url"]:
            items.append(item)
    return items


# =============================================================================
# NODES
# =============================================================================


class _BaseNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: GraphId = Field(description="Node identifier, unique within the graph")


class TriggerData(BaseModel):
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _pick_text(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        for key in ("text", "message", "label"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return {"text": value}
        return {}


class TriggerNode(_BaseNode):
    type: Literal["trigger"] = "trigger"
    data: TriggerData = Field(default_factory=TriggerData)


class MessageData(BaseModel):
    text: str = DEFAULT_MESSAGE_TEXT
    images: list[MediaItem] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _str_or(v, DEFAULT_MESSAGE_TEXT)

    @field_validator("images", mode="before")
    @classmethod
    def _filter_images(cls, v: Any) -> list[dict[str, Any]]:
        return _media_list(v)


class MessageNode(_BaseNode):
    type: Literal["message"] = "message"
    data: MessageData = Field(default_factory=MessageData)


class ImageData(BaseModel):
    images: list[MediaItem] = Field(default_factory=list)

    @field_validator("images", mode="before")
    @classmethod
    def _filter_images(cls, v: Any) -> list[dict[str, Any]]:
        return _media_list(v)


class ImageNode(_BaseNode):
    type: Literal["image"] = "image"
    data: ImageData = Field(default_factory=ImageData)


class ButtonMessageData(BaseModel):
    text: str = DEFAULT_BUTTON_TEXT
    buttons: list[str] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _str_or(v, DEFAULT_BUTTON_TEXT)

    @field_validator("buttons", mode="before")
    @classmethod
    def _filter_buttons(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [b for b in v if isinstance(b, str) and b]


class ButtonMessageNode(_BaseNode):
    type: Literal["buttonMessage"] = "buttonMessage"
    data: ButtonMessageData = Field(default_factory=ButtonMessageData)


class ConditionData(BaseModel):
    expr: str = ""

    @field_validator("expr", mode="before")
    @classmethod
    def _coerce_expr(cls, v: Any) -> str:
        return _str_or(v)


class ConditionNode(_BaseNode):
    type: Literal["condition"] = "condition"
    data: ConditionData = Field(default_factory=ConditionData)


class AIData(BaseModel):
    prompt: str = DEFAULT_AI_PROMPT

    @field_validator("prompt", mode="before")
    @classmethod
    def _coerce_prompt(cls, v: Any) -> str:
        return _str_or(v, DEFAULT_AI_PROMPT)


class AINode(_BaseNode):
    type: Literal["ai"] = "ai"
    data: AIData = Field(default_factory=AIData)


class ActionData(BaseModel):
    method: str = DEFAULT_ACTION_METHOD
    url: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def _coerce_method(cls, v: Any) -> str:
        return _str_or(v, DEFAULT_ACTION_METHOD).upper() or DEFAULT_ACTION_METHOD

    @field_validator("url", mode="before")
    @classmethod
    def _coerce_url(cls, v: Any) -> str:
        return _str_or(v)


class ActionNode(_BaseNode):
    type: Literal["action"] = "action"
    data: ActionData = Field(default_factory=ActionData)


class UnknownNode(_BaseNode):
    """A node whose type the interpreter does not handle."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


KnownNode = Annotated[
    TriggerNode
    | MessageNode
    | ImageNode
    | ButtonMessageNode
    | ConditionNode
    | AINode
    | ActionNode,
    Field(discriminator="type"),
]

Node = (
    TriggerNode
    | MessageNode
    | ImageNode
    | ButtonMessageNode
    | ConditionNode
    | AINode
    | ActionNode
    | UnknownNode
)

_KNOWN_NODE_ADAPTER: TypeAdapter[Any] = TypeAdapter(KnownNode)
_KNOWN_TYPES = frozenset(t.value for t in NodeType)


def parse_node(raw: Any) -> Node:
    """Validate a raw node document into its typed variant."""
    if isinstance(raw, BaseModel):
        return raw  # type: ignore[return-value]
    if not isinstance(raw, dict):
        raise ValueError(f"Node must be a mapping, got {type(raw).__name__}")

    doc = dict(raw)
    if not isinstance(doc.get("data"), dict):
        doc["data"] = {}
    if doc.get("type") in _KNOWN_TYPES:
        return _KNOWN_NODE_ADAPTER.validate_python(doc)  # type: ignore[no-any-return]
    return UnknownNode.model_validate(doc)


# =============================================================================
# EDGES & GRAPH
# =============================================================================


class EdgeData(BaseModel):
    model_config = ConfigDict(extra="allow")

    branch: str | None = None

    @field_validator("branch", mode="before")
    @classmethod
    def _coerce_branch(cls, v: Any) -> str | None:
        if isinstance(v, bool):
            return "true" if v else "false"
        return v if isinstance(v, str) else None


class Edge(BaseModel):
    """A directed connection between two nodes."""

    model_config = ConfigDict(populate_by_name=True)

    id: GraphId = ""
    source: GraphId
    target: GraphId
    label: str = ""
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    data: EdgeData = Field(default_factory=EdgeData)

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, v: Any) -> str:
        return _str_or(v)

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    @property
    def branch(self) -> str | None:
        """Branch flag; the builder's source handle is used when data carries none."""
        if isinstance(self.data.branch, str):
            return self.data.branch
        return self.source_handle


class FlowGraph(BaseModel):
    """Read-only conversation graph."""

    id: GraphId
    name: str = ""
    owner_id: GraphId | None = Field(default=None, alias="ownerId")
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("nodes", mode="before")
    @classmethod
    def _parse_nodes(cls, v: Any) -> list[Node]:
        if not isinstance(v, list):
            return []
        return [parse_node(raw) for raw in v]

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id: str) -> list[Edge]:
        """Edges leaving ``node_id`` in authored order."""
        return [e for e in self.edges if e.source == node_id]

    def triggers(self) -> list[TriggerNode]:
        return [n for n in self.nodes if isinstance(n, TriggerNode)]

    def trigger(self) -> TriggerNode | None:
        """The entry point. The first trigger wins when several exist."""
        found = self.triggers()
        return found[0] if found else None
