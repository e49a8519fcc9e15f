"""
Patch Schema

A patch is a JSON document produced by the AI backend: either a single
operation object or {"operations": [...], "metadata": {...}}. Operations
target blueprints by name or path and are resolved at apply time.
"""
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field
from enum import Enum

from .errors import PatchErrorCode


class PatchOperationType(str, Enum):
    """Operation kinds, keyed by the patch 'type' field"""
    VARIABLE_RENAME = "variable_rename"
    NODE_ADD = "node_add"
    NODE_MODIFY = "node_modify"
    NODE_DELETE = "node_delete"
    CONNECTION_ADD = "connection_add"
    CONNECTION_REMOVE = "connection_remove"


class PatchOperation(BaseModel):
    """
    One raw operation as it appeared in the patch

    Fields are kept exactly as decoded; required-field and type checks happen
    during validation, not parsing.
    """
    index: int = Field(default=0, description="Position in the source operations array")
    fields: Dict[str, Any] = Field(default_factory=dict, description="Decoded operation object")

    @property
    def op_type(self) -> Optional[str]:
        value = self.fields.get("type")
        return value if isinstance(value, str) and value else None

    @property
    def blueprint(self) -> Optional[str]:
        value = self.fields.get("blueprint")
        return value if isinstance(value, str) and value else None

    @property
    def kind(self) -> Optional[PatchOperationType]:
        try:
            return PatchOperationType(self.op_type)
        except ValueError:
            return None

    def describe(self) -> str:
        return f"#{self.index} '{self.op_type or '?'}' on '{self.blueprint or '?'}'"


class ParsedPatch(BaseModel):
    """Parser output"""
    operations: List[PatchOperation] = Field(default_factory=list, description="Operations in source order")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form metadata, passed through")
    error_code: Optional[PatchErrorCode] = Field(None, description="Why no operations were produced")
    error_message: Optional[str] = Field(None, description="Parser diagnostic")

    @property
    def is_empty(self) -> bool:
        return not self.operations


class OperationResult(BaseModel):
    """Result of validating or applying one operation"""
    success: bool = Field(..., description="Whether the operation passed")
    error_code: Optional[PatchErrorCode] = Field(None, description="Failure kind")
    message: str = Field(default="", description="Failure reason or summary")
    operation: Optional[Any] = Field(None, description="Typed operation record on successful validation")

    @classmethod
    def ok(cls, message: str = "", operation: Any = None) -> 'OperationResult':
        return cls(success=True, message=message, operation=operation)

    @classmethod
    def fail(cls, error_code: PatchErrorCode, message: str) -> 'OperationResult':
        return cls(success=False, error_code=error_code, message=message)


class PatchOutcome(BaseModel):
    """
    Result of one engine invocation

    Only the first failure is retained; later operations are abandoned.
    """
    success: bool = Field(..., description="Whether the whole patch was committed")
    operations_applied: int = Field(default=0, description="Operations applied before commit or failure")
    operation_count: int = Field(default=0, description="Operations in the parsed patch")
    error_code: Optional[PatchErrorCode] = Field(None, description="Failure kind")
    error_message: str = Field(default="", description="Failure reason")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Patch metadata")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "operations_applied": 1,
                "operation_count": 2,
                "error_code": "NodeNotFound",
                "error_message": "Node not found: K2Node_VariableGet_7",
                "metadata": {"generated_by": "SurrealPilot AI"}
            }
        }
    }
