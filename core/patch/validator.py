"""
Operation Validator

Checks an operation's structural and referential preconditions against the
live GraphModel without mutating anything. Every check the apply handlers
make is also made here, so an operation that validates will apply.
"""
from typing import List, Optional
import logging

from pydantic import ValidationError

from core.graph.registry import GraphModel
from .errors import PatchErrorCode
from .operations import (
    NodeAddOp, NodeDeleteOp, VariableRenameOp, SUPPORTED_NODE_TYPES, UNIMPLEMENTED_OPERATIONS,
    build_operation, first_invalid_field
)
from .schema import OperationResult, PatchOperation, PatchOperationType

logger = logging.getLogger(__name__)


class OperationValidator:
    """Read-only precondition checks for patch operations"""

    def __init__(self, graph_model: GraphModel):
        self.graph_model = graph_model

    def validate(self, operation: PatchOperation) -> OperationResult:
        """
        Validate one operation

        Args:
            operation: Raw operation from the parser

        Returns:
            OperationResult; on success .operation holds the typed record
        """
        if operation.op_type is None:
            return OperationResult.fail(PatchErrorCode.MISSING_REQUIRED_FIELD, "Operation missing 'type' field")

        if operation.blueprint is None:
            return OperationResult.fail(PatchErrorCode.MISSING_REQUIRED_FIELD, "Operation missing 'blueprint' field")

        kind = operation.kind
        if kind is None:
            return OperationResult.fail(
                PatchErrorCode.UNKNOWN_OPERATION_TYPE, f"Unknown operation type: {operation.op_type}"
            )

        if kind in UNIMPLEMENTED_OPERATIONS:
            return not_implemented(kind)

        blueprint = self.graph_model.resolve_blueprint(operation.blueprint)
        if blueprint is None:
            return OperationResult.fail(
                PatchErrorCode.BLUEPRINT_NOT_FOUND, f"Blueprint not found: {operation.blueprint}"
            )

        try:
            typed = build_operation(operation)
        except ValidationError as e:
            field = first_invalid_field(e)
            return OperationResult.fail(
                PatchErrorCode.MISSING_REQUIRED_FIELD,
                f"{kind.value} operation missing or invalid field '{field}'"
            )

        if kind == PatchOperationType.VARIABLE_RENAME:
            failure = self._check_variable_rename(blueprint, typed)
        elif kind == PatchOperationType.NODE_ADD:
            failure = self._check_node_add(blueprint, typed)
        else:
            failure = self._check_node_delete(blueprint, typed)

        return failure or OperationResult.ok(operation=typed)

    def validate_all(self, operations: List[PatchOperation]) -> OperationResult:
        """Validate operations in order, stopping at the first failure"""
        for operation in operations:
            result = self.validate(operation)
            if not result.success:
                logger.warning(f"Operation {operation.describe()} is invalid: {result.message}")
                return result
        return OperationResult.ok(message=f"{len(operations)} operation(s) valid")

    def _check_variable_rename(self, blueprint, op: VariableRenameOp) -> Optional[OperationResult]:
        if self.graph_model.find_variable(blueprint, op.old_name) is None:
            return OperationResult.fail(PatchErrorCode.VARIABLE_NOT_FOUND, f"Variable not found: {op.old_name}")
        if self.graph_model.find_variable(blueprint, op.new_name) is not None:
            return OperationResult.fail(
                PatchErrorCode.VARIABLE_ALREADY_EXISTS, f"Variable already exists: {op.new_name}"
            )
        return None

    def _check_node_add(self, blueprint, op: NodeAddOp) -> Optional[OperationResult]:
        if op.node_type not in SUPPORTED_NODE_TYPES:
            return OperationResult.fail(
                PatchErrorCode.UNSUPPORTED_NODE_TYPE, f"Unsupported node type: {op.node_type}"
            )
        if not op.member_name:
            return OperationResult.fail(
                PatchErrorCode.MISSING_REQUIRED_FIELD,
                f"{op.node_type} node requires field '{op.member_field}'"
            )
        if self.graph_model.find_graph(blueprint, op.graph) is None:
            return OperationResult.fail(PatchErrorCode.GRAPH_NOT_FOUND, f"Graph not found: {op.graph}")
        return None

    def _check_node_delete(self, blueprint, op: NodeDeleteOp) -> Optional[OperationResult]:
        if self.graph_model.find_node(blueprint, op.node_id) is None:
            return OperationResult.fail(PatchErrorCode.NODE_NOT_FOUND, f"Node not found: {op.node_id}")
        return None


def not_implemented(kind: PatchOperationType) -> OperationResult:
    """Failure for operation kinds that are deliberately unsupported"""
    names = {
        PatchOperationType.NODE_MODIFY: "Node modification",
        PatchOperationType.CONNECTION_ADD: "Connection operations",
        PatchOperationType.CONNECTION_REMOVE: "Connection operations",
    }
    return OperationResult.fail(
        PatchErrorCode.NOT_IMPLEMENTED, f"{names.get(kind, kind.value)} not yet implemented ({kind.value})"
    )
