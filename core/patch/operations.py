"""
Patch Operations

Typed records for each operation kind. A raw PatchOperation is turned into
one of these during validation; a pydantic ValidationError means a required
field is missing or has the wrong type.

Supported:
- variable_rename
- node_add (VariableGet, VariableSet, FunctionCall)
- node_delete

Explicitly unsupported (always rejected with NotImplemented):
- node_modify
- connection_add / connection_remove
"""
from typing import Dict, Optional, Type
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.graph.models import NodeKind
from .schema import PatchOperation, PatchOperationType


DEFAULT_GRAPH_NAME = "EventGraph"

# node_type value -> (node kind, field naming the referenced member)
SUPPORTED_NODE_TYPES: Dict[str, tuple] = {
    "VariableGet": (NodeKind.VARIABLE_GET, "variable_name"),
    "VariableSet": (NodeKind.VARIABLE_SET, "variable_name"),
    "FunctionCall": (NodeKind.FUNCTION_CALL, "function_name"),
}

UNIMPLEMENTED_OPERATIONS = (
    PatchOperationType.NODE_MODIFY,
    PatchOperationType.CONNECTION_ADD,
    PatchOperationType.CONNECTION_REMOVE,
)


class BaseOp(BaseModel):
    """Fields shared by every operation"""
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1, description="Operation type")
    blueprint: str = Field(..., min_length=1, description="Target blueprint name or path")
    description: Optional[str] = Field(None, description="Explanation from the AI backend")


class NodePosition(BaseModel):
    """Graph position of a new node"""
    x: float = 0.0
    y: float = 0.0


class VariableRenameOp(BaseOp):
    """
    variable_rename operation
    Renames a member variable and every get/set node that references it
    """
    old_name: str = Field(..., min_length=1, description="Current variable name")
    new_name: str = Field(..., min_length=1, description="New variable name")


class NodeAddOp(BaseOp):
    """
    node_add operation
    Adds a variable get/set or function call node to a graph
    """
    node_type: str = Field(..., min_length=1, description="'VariableGet', 'VariableSet' or 'FunctionCall'")
    graph: str = Field(default=DEFAULT_GRAPH_NAME, description="Target graph name")
    variable_name: Optional[str] = Field(None, description="Variable for get/set nodes")
    function_name: Optional[str] = Field(None, description="Function for call nodes")
    position: NodePosition = Field(default_factory=NodePosition, description="Node position {x, y}")

    @field_validator("graph", mode="before")
    @classmethod
    def _default_graph(cls, value):
        if value is None or value == "":
            return DEFAULT_GRAPH_NAME
        return value

    @field_validator("position", mode="before")
    @classmethod
    def _lenient_position(cls, value):
        # Position is applied only when both coordinates are numbers
        if isinstance(value, dict):
            x, y = value.get("x"), value.get("y")
            numeric = (int, float)
            if isinstance(x, numeric) and isinstance(y, numeric) and not isinstance(x, bool) and not isinstance(y, bool):
                return {"x": x, "y": y}
        return NodePosition()

    @property
    def node_kind(self) -> Optional[NodeKind]:
        entry = SUPPORTED_NODE_TYPES.get(self.node_type)
        return entry[0] if entry else None

    @property
    def member_field(self) -> Optional[str]:
        entry = SUPPORTED_NODE_TYPES.get(self.node_type)
        return entry[1] if entry else None

    @property
    def member_name(self) -> Optional[str]:
        field = self.member_field
        return getattr(self, field) if field else None


class NodeDeleteOp(BaseOp):
    """
    node_delete operation
    Removes a node, identified by object name or GUID
    """
    node_id: str = Field(..., min_length=1, description="Node object name or GUID")


class NodeModifyOp(BaseOp):
    """node_modify operation (not supported)"""


class ConnectionOp(BaseOp):
    """connection_add / connection_remove operation (not supported)"""


OPERATION_MODELS: Dict[PatchOperationType, Type[BaseOp]] = {
    PatchOperationType.VARIABLE_RENAME: VariableRenameOp,
    PatchOperationType.NODE_ADD: NodeAddOp,
    PatchOperationType.NODE_DELETE: NodeDeleteOp,
    PatchOperationType.NODE_MODIFY: NodeModifyOp,
    PatchOperationType.CONNECTION_ADD: ConnectionOp,
    PatchOperationType.CONNECTION_REMOVE: ConnectionOp,
}


def build_operation(operation: PatchOperation) -> BaseOp:
    """
    Build the typed record for a raw operation

    Raises:
        ValueError: If the operation type is unknown
        ValidationError: If a required field is missing or mistyped
    """
    kind = operation.kind
    if kind is None:
        raise ValueError(f"Unknown operation type: {operation.op_type}")
    return OPERATION_MODELS[kind].model_validate(operation.fields)


def first_invalid_field(error: ValidationError) -> str:
    """Name of the first field a ValidationError complains about"""
    for detail in error.errors():
        if detail.get("loc"):
            return str(detail["loc"][0])
    return "?"
