"""
Patch error taxonomy

Every expected patch failure is reported as one of these codes together with
a human-readable message. Codes are stable strings so callers and the AI
backend can match on them.
"""
from enum import Enum


class PatchErrorCode(str, Enum):
    """Failure kinds reported by parsing, validation and application"""
    EMPTY_PATCH = "EmptyPatch"
    MALFORMED_JSON = "MalformedJson"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    BLUEPRINT_NOT_FOUND = "BlueprintNotFound"
    VARIABLE_NOT_FOUND = "VariableNotFound"
    VARIABLE_ALREADY_EXISTS = "VariableAlreadyExists"
    GRAPH_NOT_FOUND = "GraphNotFound"
    NODE_NOT_FOUND = "NodeNotFound"
    UNSUPPORTED_NODE_TYPE = "UnsupportedNodeType"
    NOT_IMPLEMENTED = "NotImplemented"
    UNKNOWN_OPERATION_TYPE = "UnknownOperationType"
    ENGINE_BUSY = "EngineBusy"
