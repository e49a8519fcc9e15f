"""
Patch apply handlers

One function per operation kind. Handlers re-resolve their targets, mutate
the GraphModel and report an OperationResult; expected failures are never
raised. The engine owns the transaction, so a failed handler may leave
partial changes behind for the rollback to discard.
"""
from typing import Callable, Dict
import logging

from core.graph.registry import GraphModel
from core.patch.errors import PatchErrorCode
from core.patch.operations import BaseOp, NodeAddOp, NodeDeleteOp, VariableRenameOp, SUPPORTED_NODE_TYPES
from core.patch.schema import OperationResult, PatchOperationType
from core.patch.validator import not_implemented

logger = logging.getLogger(__name__)

Handler = Callable[[GraphModel, BaseOp], OperationResult]


def apply_variable_rename(graph_model: GraphModel, op: VariableRenameOp) -> OperationResult:
    """Rename a variable, then rewire every get/set node in every graph of the blueprint"""
    blueprint = graph_model.resolve_blueprint(op.blueprint)
    if blueprint is None:
        return OperationResult.fail(PatchErrorCode.BLUEPRINT_NOT_FOUND, f"Blueprint not found: {op.blueprint}")

    variable = graph_model.find_variable(blueprint, op.old_name)
    if variable is None:
        return OperationResult.fail(PatchErrorCode.VARIABLE_NOT_FOUND, f"Variable not found: {op.old_name}")

    if graph_model.find_variable(blueprint, op.new_name) is not None:
        return OperationResult.fail(
            PatchErrorCode.VARIABLE_ALREADY_EXISTS, f"Variable already exists: {op.new_name}"
        )

    # Variable table first, then node references; both inside the caller's transaction
    graph_model.rename_variable(variable, op.new_name)
    rewired = graph_model.rewire_variable_references(blueprint, op.old_name, op.new_name)
    graph_model.mark_modified(blueprint)

    logger.info(
        f"Renamed variable '{op.old_name}' to '{op.new_name}' in blueprint '{op.blueprint}' "
        f"({rewired} node(s) updated)"
    )
    return OperationResult.ok(f"Renamed {op.old_name} -> {op.new_name}")


def apply_node_add(graph_model: GraphModel, op: NodeAddOp) -> OperationResult:
    blueprint = graph_model.resolve_blueprint(op.blueprint)
    if blueprint is None:
        return OperationResult.fail(PatchErrorCode.BLUEPRINT_NOT_FOUND, f"Blueprint not found: {op.blueprint}")

    graph = graph_model.find_graph(blueprint, op.graph)
    if graph is None:
        return OperationResult.fail(PatchErrorCode.GRAPH_NOT_FOUND, f"Graph not found: {op.graph}")

    if op.node_type not in SUPPORTED_NODE_TYPES:
        return OperationResult.fail(
            PatchErrorCode.UNSUPPORTED_NODE_TYPE, f"Failed to create node of type: {op.node_type}"
        )
    if not op.member_name:
        return OperationResult.fail(
            PatchErrorCode.MISSING_REQUIRED_FIELD, f"{op.node_type} node requires field '{op.member_field}'"
        )

    node = graph_model.create_node(graph, op.node_kind, {
        "member_name": op.member_name,
        "pos_x": op.position.x,
        "pos_y": op.position.y,
    })
    graph_model.mark_modified(blueprint)

    logger.info(f"Added node of type '{op.node_type}' to graph '{op.graph}' in blueprint '{op.blueprint}'")
    return OperationResult.ok(f"Added {node.name}")


def apply_node_delete(graph_model: GraphModel, op: NodeDeleteOp) -> OperationResult:
    blueprint = graph_model.resolve_blueprint(op.blueprint)
    if blueprint is None:
        return OperationResult.fail(PatchErrorCode.BLUEPRINT_NOT_FOUND, f"Blueprint not found: {op.blueprint}")

    node = graph_model.find_node(blueprint, op.node_id)
    if node is None:
        return OperationResult.fail(PatchErrorCode.NODE_NOT_FOUND, f"Node not found: {op.node_id}")

    if not graph_model.delete_node(node):
        return OperationResult.fail(PatchErrorCode.NODE_NOT_FOUND, "Failed to remove node from graph")

    graph_model.mark_modified(blueprint)
    logger.info(f"Deleted node '{op.node_id}' from blueprint '{op.blueprint}'")
    return OperationResult.ok(f"Deleted {op.node_id}")


def _unsupported(kind: PatchOperationType) -> Handler:
    def handler(graph_model: GraphModel, op: BaseOp) -> OperationResult:
        return not_implemented(kind)
    return handler


HANDLERS: Dict[PatchOperationType, Handler] = {
    PatchOperationType.VARIABLE_RENAME: apply_variable_rename,
    PatchOperationType.NODE_ADD: apply_node_add,
    PatchOperationType.NODE_DELETE: apply_node_delete,
    PatchOperationType.NODE_MODIFY: _unsupported(PatchOperationType.NODE_MODIFY),
    PatchOperationType.CONNECTION_ADD: _unsupported(PatchOperationType.CONNECTION_ADD),
    PatchOperationType.CONNECTION_REMOVE: _unsupported(PatchOperationType.CONNECTION_REMOVE),
}
