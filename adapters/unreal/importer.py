"""
Unreal Context Importer
Maps the editor's blueprint context JSON to Blueprint models

The plugin exports a blueprint as:
    {"name", "path", "parentClass", "variables": [...], "graphs": [...]}
with nodes carrying "class", "posX"/"posY", "pins" and the referenced
"variableName" / "functionName" / "eventName".
"""
import json
import logging
from typing import Dict, Any, Optional, List

from core.graph.models import (
    Blueprint, BlueprintVariable, Graph, GraphNode, GraphType, NodeKind, Pin, PinDirection,
    WILDCARD_PIN_TYPE, new_guid
)
from core.graph.registry import GraphModel

logger = logging.getLogger(__name__)

# Editor node class -> node kind
NODE_KINDS_BY_CLASS: Dict[str, NodeKind] = {
    "K2Node_VariableGet": NodeKind.VARIABLE_GET,
    "K2Node_VariableSet": NodeKind.VARIABLE_SET,
    "K2Node_CallFunction": NodeKind.FUNCTION_CALL,
    "K2Node_Event": NodeKind.EVENT,
    "K2Node_CustomEvent": NodeKind.EVENT,
}


class BlueprintImporter:
    """Imports blueprint context exports into the GraphModel"""

    def import_context(self, context: Dict[str, Any]) -> Blueprint:
        """
        Convert one blueprint context object

        Args:
            context: Decoded context JSON for a single blueprint

        Returns:
            Blueprint
        """
        if not isinstance(context, dict) or not context.get("name"):
            raise ValueError("Blueprint context must be an object with a 'name'")

        variables = [self._convert_variable(v) for v in context.get("variables", []) if isinstance(v, dict)]
        graphs = [self._convert_graph(g) for g in context.get("graphs", []) if isinstance(g, dict)]

        blueprint = Blueprint(
            name=context["name"],
            path=context.get("path", ""),
            parent_class=context.get("parentClass"),
            variables=variables,
            graphs=graphs,
        )
        logger.info(
            f"Imported blueprint '{blueprint.name}' "
            f"({len(variables)} variables, {len(graphs)} graphs, {len(blueprint.all_nodes())} nodes)"
        )
        return blueprint

    def import_file(self, file_path: str) -> List[Blueprint]:
        """
        Import a context export file

        The file may hold one blueprint object or a list of them.

        Args:
            file_path: Path to the JSON export

        Returns:
            Imported blueprints
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        contexts = data if isinstance(data, list) else [data]
        return [self.import_context(context) for context in contexts]

    def load_into(self, graph_model: GraphModel, file_path: str) -> List[Blueprint]:
        """Import a file and register every blueprint with the model"""
        blueprints = self.import_file(file_path)
        for blueprint in blueprints:
            graph_model.add_blueprint(blueprint)
        return blueprints

    def _convert_variable(self, data: Dict[str, Any]) -> BlueprintVariable:
        return BlueprintVariable(
            name=data.get("name", ""),
            var_type=data.get("type") or "bool",
            default_value=str(data.get("defaultValue", "")),
            is_array=bool(data.get("isArray", False)),
        )

    def _convert_graph(self, data: Dict[str, Any]) -> Graph:
        name = data.get("name", "")
        try:
            graph_type = GraphType(data.get("graphType"))
        except ValueError:
            # Plain editor exports carry no graph type; only the ubergraph is called EventGraph
            graph_type = GraphType.EVENT_GRAPH if name == "EventGraph" else GraphType.FUNCTION

        nodes = [self._convert_node(n) for n in data.get("nodes", []) if isinstance(n, dict)]
        return Graph(name=name, graph_type=graph_type, nodes=nodes)

    def _convert_node(self, data: Dict[str, Any]) -> GraphNode:
        kind = NODE_KINDS_BY_CLASS.get(data.get("class", ""), NodeKind.GENERIC)
        member_name: Optional[str] = (
            data.get("variableName") or data.get("functionName") or data.get("eventName")
        )

        pins = []
        for pin in data.get("pins", []):
            if not isinstance(pin, dict):
                continue
            direction = PinDirection.OUTPUT if pin.get("direction") == "Output" else PinDirection.INPUT
            pins.append(Pin(
                id=pin.get("id") or new_guid(),
                name=pin.get("name", ""),
                direction=direction,
                pin_type=pin.get("type") or WILDCARD_PIN_TYPE,
                default_value=str(pin.get("defaultValue", "")),
                linked_to=list(pin.get("linkedTo", [])),
            ))

        return GraphNode(
            name=data.get("name", ""),
            guid=data.get("guid") or new_guid(),
            kind=kind,
            member_name=member_name,
            pos_x=float(data.get("posX", 0.0)),
            pos_y=float(data.get("posY", 0.0)),
            pins=pins,
        )
