"""Flow graph loader for YAML and JSON documents."""

import json
from pathlib import Path
from typing import Any

import pydantic
import yaml

from chatflow.core.errors import GraphLoadError
from chatflow.graph.models import FlowGraph

FLOW_SUFFIXES = (".yaml", ".yml", ".json")


class FlowLoader:
    """Load FlowGraph documents from files or parsed data."""

    @staticmethod
    def from_dict(data: dict[str, Any], flow_id: str | None = None) -> FlowGraph:
        """Validate a parsed graph document.

        Args:
            data: Mapping with ``nodes`` and ``edges`` lists
            flow_id: Id to use when the document carries none

        Raises:
            GraphLoadError: If the document is not a valid graph
        """
        if not isinstance(data, dict):
            raise GraphLoadError(f"Flow document must be a mapping, got {type(data).__name__}")

        doc = dict(data)
        if flow_id is not None and "id" not in doc:
            doc["id"] = flow_id
        try:
            return FlowGraph.model_validate(doc)
        except (pydantic.ValidationError, ValueError) as e:
            raise GraphLoadError(f"Invalid flow graph: {e}") from e

    @staticmethod
    def load(path: Path | str) -> FlowGraph:
        """Load a flow graph from a .yaml/.yml/.json file.

        The file stem is used as the flow id when the document has none.
        """
        flow_path = Path(path)
        if not flow_path.exists():
            raise FileNotFoundError(f"Flow file not found: {flow_path}")
        if flow_path.suffix not in FLOW_SUFFIXES:
            raise GraphLoadError(f"Unsupported flow file type: {flow_path.suffix}")

        with open(flow_path, encoding="utf-8") as f:
            try:
                if flow_path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise GraphLoadError(f"Cannot parse {flow_path}: {e}") from e

        return FlowLoader.from_dict(data, flow_id=flow_path.stem)
