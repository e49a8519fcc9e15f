"""
Patch module

Patches are JSON batches of blueprint graph mutations produced by the AI
backend.
"""
from .errors import PatchErrorCode
from .schema import PatchOperation, PatchOperationType, ParsedPatch, OperationResult, PatchOutcome
from .operations import (
    VariableRenameOp, NodeAddOp, NodeDeleteOp, NodeModifyOp, ConnectionOp, NodePosition,
    DEFAULT_GRAPH_NAME, SUPPORTED_NODE_TYPES
)
from .parser import parse_patch
from .validator import OperationValidator

__all__ = [
    'PatchErrorCode',
    'PatchOperation', 'PatchOperationType', 'ParsedPatch', 'OperationResult', 'PatchOutcome',
    'VariableRenameOp', 'NodeAddOp', 'NodeDeleteOp', 'NodeModifyOp', 'ConnectionOp', 'NodePosition',
    'DEFAULT_GRAPH_NAME', 'SUPPORTED_NODE_TYPES',
    'parse_patch', 'OperationValidator'
]
