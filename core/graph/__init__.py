"""
Graph module
Blueprint graph object model, registry and transactions
"""

from .models import (
    Blueprint, BlueprintVariable, Graph, GraphNode, GraphType, NodeKind, Pin, PinDirection
)
from .registry import GraphModel, GraphModelSnapshot
from .transaction import TransactionScope, TransactionError, UndoHistory

__all__ = [
    'Blueprint', 'BlueprintVariable', 'Graph', 'GraphNode', 'GraphType', 'NodeKind', 'Pin', 'PinDirection',
    'GraphModel', 'GraphModelSnapshot',
    'TransactionScope', 'TransactionError', 'UndoHistory'
]
