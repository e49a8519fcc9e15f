"""
Unreal Context Exporter
Maps Blueprint models back to the editor's blueprint context JSON
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

from core.graph.models import Blueprint, Graph, GraphNode, NodeKind, NODE_CLASS_NAMES

logger = logging.getLogger(__name__)

MEMBER_FIELDS = {
    NodeKind.VARIABLE_GET: "variableName",
    NodeKind.VARIABLE_SET: "variableName",
    NodeKind.FUNCTION_CALL: "functionName",
    NodeKind.EVENT: "eventName",
}


class BlueprintExporter:
    """Exports blueprints in the same shape BlueprintImporter reads"""

    def export_context(self, blueprint: Blueprint) -> Dict[str, Any]:
        context = {
            "name": blueprint.name,
            "path": blueprint.path,
            "type": "Blueprint",
            "timestamp": datetime.now().isoformat(),
            "variables": [
                {
                    "name": variable.name,
                    "type": variable.var_type,
                    "defaultValue": variable.default_value,
                    "isArray": variable.is_array,
                }
                for variable in blueprint.variables
            ],
            "graphs": [self._export_graph(graph) for graph in blueprint.graphs],
        }
        if blueprint.parent_class:
            context["parentClass"] = blueprint.parent_class
        return context

    def export_file(self, blueprint: Blueprint, output_path: str) -> bool:
        """
        Write a blueprint context export

        Args:
            blueprint: Blueprint to export
            output_path: Output file path

        Returns:
            True if successful, False otherwise
        """
        try:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.export_context(blueprint), f, indent=2)
            logger.info(f"Exported blueprint '{blueprint.name}' to {output_path}")
            return True
        except OSError as e:
            logger.error(f"Error exporting blueprint '{blueprint.name}': {e}")
            return False

    def _export_graph(self, graph: Graph) -> Dict[str, Any]:
        return {
            "name": graph.name,
            "graphType": graph.graph_type.value,
            "nodes": [self._export_node(node) for node in graph.nodes],
            "nodeCount": graph.node_count,
        }

    def _export_node(self, node: GraphNode) -> Dict[str, Any]:
        data = {
            "name": node.name,
            "guid": node.guid,
            "class": NODE_CLASS_NAMES[node.kind],
            "posX": node.pos_x,
            "posY": node.pos_y,
            "pins": [
                {
                    "id": pin.id,
                    "name": pin.name,
                    "type": pin.pin_type,
                    "direction": pin.direction.value,
                    "defaultValue": pin.default_value,
                    "isConnected": bool(pin.linked_to),
                    "connectionCount": len(pin.linked_to),
                    "linkedTo": list(pin.linked_to),
                }
                for pin in node.pins
            ],
        }
        member_field = MEMBER_FIELDS.get(node.kind)
        if member_field and node.member_name:
            data[member_field] = node.member_name
        return data
