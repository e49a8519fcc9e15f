"""
Graph Model
In-memory registry of loaded blueprints

Exposes the narrow lookup/mutate interface the patch engine works through,
plus whole-model snapshots used by transactions and undo history.
"""
from typing import List, Optional, Dict, Any, Tuple
import copy
import logging

from pydantic import BaseModel

from .models import (
    Blueprint, BlueprintVariable, Graph, GraphNode, NodeKind, Pin,
    NODE_CLASS_NAMES, WILDCARD_PIN_TYPE
)

logger = logging.getLogger(__name__)


class ModelState:
    """
    Saved state of one live model object

    Plain field values are deep-copied. Nested models and lists of models are
    saved as their own ModelState, so restoring puts the original objects (and
    the original list objects) back instead of copies.
    """

    def __init__(self, model: BaseModel):
        self.model = model
        self.values: Dict[str, Any] = {}
        self.children: Dict[str, "ModelState"] = {}
        self.lists: Dict[str, Tuple[list, List["ModelState"]]] = {}

        for field_name in type(model).model_fields:
            value = getattr(model, field_name)
            if isinstance(value, BaseModel):
                self.children[field_name] = ModelState(value)
            elif isinstance(value, list) and value and all(isinstance(item, BaseModel) for item in value):
                self.lists[field_name] = (value, [ModelState(item) for item in value])
            else:
                self.values[field_name] = copy.deepcopy(value)

    def restore(self) -> BaseModel:
        for field_name, value in self.values.items():
            setattr(self.model, field_name, copy.deepcopy(value))
        for field_name, child in self.children.items():
            setattr(self.model, field_name, child.restore())
        for field_name, (items, states) in self.lists.items():
            items[:] = [state.restore() for state in states]
            setattr(self.model, field_name, items)
        return self.model


class GraphModelSnapshot:
    """Saved state of every loaded blueprint, down to individual pins"""

    def __init__(self, entries: List[ModelState]):
        self.entries = entries

    def __len__(self) -> int:
        return len(self.entries)


class GraphModel:
    """
    Registry of blueprints currently loaded in the editor session

    Usage:
        model = GraphModel()
        model.add_blueprint(blueprint)
        bp = model.resolve_blueprint("/Game/BP_Player")
    """

    def __init__(self, blueprints: Optional[List[Blueprint]] = None):
        self._blueprints: List[Blueprint] = []
        for blueprint in blueprints or []:
            self.add_blueprint(blueprint)

    # =========================================================================
    # Registry
    # =========================================================================

    def add_blueprint(self, blueprint: Blueprint) -> Blueprint:
        self._blueprints.append(blueprint)
        return blueprint

    def remove_blueprint(self, blueprint: Blueprint) -> bool:
        for index, loaded in enumerate(self._blueprints):
            if loaded is blueprint:
                del self._blueprints[index]
                return True
        return False

    def blueprints(self) -> List[Blueprint]:
        return list(self._blueprints)

    # =========================================================================
    # Lookup
    # =========================================================================

    def resolve_blueprint(self, path_or_name: str) -> Optional[Blueprint]:
        """
        Find a loaded blueprint

        Exact path match wins; otherwise the first blueprint (in load order)
        whose name or path equals the identifier.

        Args:
            path_or_name: Object path or asset name

        Returns:
            Blueprint or None if not loaded
        """
        if not path_or_name:
            return None

        for blueprint in self._blueprints:
            if blueprint.path and blueprint.path == path_or_name:
                return blueprint

        for blueprint in self._blueprints:
            if blueprint.name == path_or_name or blueprint.path == path_or_name:
                return blueprint

        return None

    def find_variable(self, blueprint: Blueprint, name: str) -> Optional[BlueprintVariable]:
        for variable in blueprint.variables:
            if variable.name == name:
                return variable
        return None

    def find_graph(self, blueprint: Blueprint, name: str) -> Optional[Graph]:
        for graph in blueprint.graphs:
            if graph.name == name:
                return graph
        return None

    def find_node(self, blueprint: Blueprint, id_or_name: str) -> Optional[GraphNode]:
        """Find a node by object name or GUID across every graph of the blueprint"""
        for graph in blueprint.graphs:
            for node in graph.nodes:
                if node.name == id_or_name or node.guid == id_or_name:
                    return node
        return None

    def find_node_graph(self, node: GraphNode) -> Optional[Tuple[Blueprint, Graph]]:
        """Find the blueprint and graph that own a node"""
        for blueprint in self._blueprints:
            for graph in blueprint.graphs:
                if any(candidate is node for candidate in graph.nodes):
                    return blueprint, graph
        return None

    # =========================================================================
    # Mutation
    # =========================================================================

    def rename_variable(self, variable: BlueprintVariable, new_name: str):
        variable.name = new_name

    def rewire_variable_references(self, blueprint: Blueprint, old_name: str, new_name: str) -> int:
        """
        Point every variable get/set node that references old_name at new_name

        Each affected node is reconstructed so its value pin is renamed and
        retyped while keeping its links.

        Returns:
            Number of nodes updated
        """
        value_type = blueprint.variable_types().get(new_name, WILDCARD_PIN_TYPE)
        updated = 0

        for graph in blueprint.graphs:
            for node in graph.nodes:
                if node.is_variable_node and node.member_name == old_name:
                    node.member_name = new_name
                    node.reconstruct(value_type, previous_member=old_name)
                    updated += 1

        logger.debug(f"Rewired {updated} node(s) from '{old_name}' to '{new_name}' in '{blueprint.name}'")
        return updated

    def create_node(self, graph: Graph, kind: NodeKind, params: Optional[Dict[str, Any]] = None) -> GraphNode:
        """
        Create a node in a graph

        Args:
            graph: Target graph (must belong to a loaded blueprint)
            kind: Node kind
            params: 'member_name', 'pos_x', 'pos_y'

        Returns:
            The inserted node, with default pins allocated
        """
        params = params or {}
        owner = self._find_graph_owner(graph)
        if owner is None:
            raise ValueError(f"Graph '{graph.name}' does not belong to a loaded blueprint")

        member_name = params.get("member_name")
        node = GraphNode(
            name=self._unique_node_name(owner, kind),
            kind=kind,
            member_name=member_name,
            pos_x=float(params.get("pos_x", 0.0)),
            pos_y=float(params.get("pos_y", 0.0)),
        )

        graph.nodes.append(node)

        value_type = owner.variable_types().get(member_name or "", WILDCARD_PIN_TYPE)
        node.allocate_default_pins(value_type)
        node.reconstruct(value_type)
        return node

    def delete_node(self, node: GraphNode) -> bool:
        """
        Remove a node from its owning graph and break every link to its pins

        Returns:
            True if removed, False if the node is not in any loaded graph
        """
        owner = self.find_node_graph(node)
        if owner is None:
            return False

        blueprint, graph = owner
        graph.nodes = [candidate for candidate in graph.nodes if candidate is not node]

        pin_ids = {pin.id for pin in node.pins}
        for other in blueprint.all_nodes():
            for pin in other.pins:
                if pin.linked_to:
                    pin.linked_to = [pin_id for pin_id in pin.linked_to if pin_id not in pin_ids]
        return True

    def link_pins(self, pin_a: Pin, pin_b: Pin):
        """Connect two pins in both directions"""
        if pin_b.id not in pin_a.linked_to:
            pin_a.linked_to.append(pin_b.id)
        if pin_a.id not in pin_b.linked_to:
            pin_b.linked_to.append(pin_a.id)

    def mark_modified(self, blueprint: Blueprint):
        blueprint.modified = True
        blueprint.modification_count += 1

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> GraphModelSnapshot:
        return GraphModelSnapshot([ModelState(blueprint) for blueprint in self._blueprints])

    def restore(self, snapshot: GraphModelSnapshot):
        """
        Restore every blueprint to its snapshot state, in place

        Blueprints, graphs, nodes, pins and variables that existed when the
        snapshot was taken keep their identity, so handles held by the editor
        stay valid. Objects created after the snapshot are dropped; deleted
        ones come back as the same objects. The snapshot itself is left
        untouched and can be restored again.
        """
        self._blueprints = [state.restore() for state in snapshot.entries]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _find_graph_owner(self, graph: Graph) -> Optional[Blueprint]:
        for blueprint in self._blueprints:
            if any(candidate is graph for candidate in blueprint.graphs):
                return blueprint
        return None

    def _unique_node_name(self, blueprint: Blueprint, kind: NodeKind) -> str:
        prefix = f"{NODE_CLASS_NAMES[kind]}_"
        taken = {node.name for node in blueprint.all_nodes()}
        index = 0
        while f"{prefix}{index}" in taken:
            index += 1
        return f"{prefix}{index}"
