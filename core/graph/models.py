"""
Blueprint graph models

Models the editor-side state that AI patches mutate: blueprints, their
graphs, graph nodes, node pins and member variables.
"""
from typing import List, Optional, Dict
from pydantic import BaseModel, Field
from enum import Enum
import uuid


WILDCARD_PIN_TYPE = "wildcard"
EXEC_PIN_TYPE = "exec"


def new_guid() -> str:
    """Editor-style GUID string (32 upper-case hex digits)"""
    return uuid.uuid4().hex.upper()


class PinDirection(str, Enum):
    """Pin direction"""
    INPUT = "Input"
    OUTPUT = "Output"


class NodeKind(str, Enum):
    """Node kinds the patch engine can create or rewire"""
    VARIABLE_GET = "VariableGet"
    VARIABLE_SET = "VariableSet"
    FUNCTION_CALL = "FunctionCall"
    EVENT = "Event"
    GENERIC = "Node"


class GraphType(str, Enum):
    """Graph type"""
    EVENT_GRAPH = "EventGraph"
    FUNCTION = "Function"
    MACRO = "Macro"


class Pin(BaseModel):
    """Typed connection point on a node"""
    id: str = Field(default_factory=new_guid, description="Stable pin identifier")
    name: str = Field(..., description="Pin name (e.g. 'execute', 'then', variable name)")
    direction: PinDirection = Field(..., description="Input or output")
    pin_type: str = Field(default=WILDCARD_PIN_TYPE, description="Pin category ('exec', 'float', ...)")
    default_value: str = Field(default="", description="Literal default for unconnected inputs")
    linked_to: List[str] = Field(default_factory=list, description="IDs of pins this pin is linked to")

    @property
    def is_exec(self) -> bool:
        return self.pin_type == EXEC_PIN_TYPE


class GraphNode(BaseModel):
    """Graph node (vertex)"""
    name: str = Field(..., description="Node object name, unique within the blueprint")
    guid: str = Field(default_factory=new_guid, description="Stable unique node identifier")
    kind: NodeKind = Field(default=NodeKind.GENERIC, description="Node kind")
    member_name: Optional[str] = Field(None, description="Referenced variable, function or event name")
    pos_x: float = Field(default=0.0, description="Graph X position")
    pos_y: float = Field(default=0.0, description="Graph Y position")
    pins: List[Pin] = Field(default_factory=list, description="Node pins")

    @property
    def is_variable_node(self) -> bool:
        return self.kind in (NodeKind.VARIABLE_GET, NodeKind.VARIABLE_SET)

    def find_pin(self, name: str, direction: Optional[PinDirection] = None) -> Optional[Pin]:
        for pin in self.pins:
            if pin.name == name and (direction is None or pin.direction == direction):
                return pin
        return None

    def allocate_default_pins(self, value_type: str = WILDCARD_PIN_TYPE):
        """
        Create the default pin set for this node's kind

        Args:
            value_type: Pin type used for the variable value pin
        """
        member = self.member_name or ""
        if self.kind == NodeKind.VARIABLE_GET:
            self.pins = [Pin(name=member, direction=PinDirection.OUTPUT, pin_type=value_type)]
        elif self.kind == NodeKind.VARIABLE_SET:
            self.pins = [
                Pin(name="execute", direction=PinDirection.INPUT, pin_type=EXEC_PIN_TYPE),
                Pin(name="then", direction=PinDirection.OUTPUT, pin_type=EXEC_PIN_TYPE),
                Pin(name=member, direction=PinDirection.INPUT, pin_type=value_type),
                Pin(name="Output_Get", direction=PinDirection.OUTPUT, pin_type=value_type),
            ]
        elif self.kind == NodeKind.FUNCTION_CALL:
            self.pins = [
                Pin(name="execute", direction=PinDirection.INPUT, pin_type=EXEC_PIN_TYPE),
                Pin(name="then", direction=PinDirection.OUTPUT, pin_type=EXEC_PIN_TYPE),
                Pin(name="self", direction=PinDirection.INPUT, pin_type="object"),
                Pin(name="ReturnValue", direction=PinDirection.OUTPUT, pin_type=WILDCARD_PIN_TYPE),
            ]
        elif self.kind == NodeKind.EVENT:
            self.pins = [Pin(name="then", direction=PinDirection.OUTPUT, pin_type=EXEC_PIN_TYPE)]
        # Generic nodes keep whatever pins they were imported with

    def reconstruct(self, value_type: str = WILDCARD_PIN_TYPE, previous_member: Optional[str] = None):
        """
        Rebuild default pins, carrying over ids, links and defaults of matching old pins

        An old pin matches a new one when direction, name and exec-ness agree,
        and each old pin is carried over at most once. The variable value pin
        also matches under the node's previous member name, so links survive a
        rename.

        Args:
            value_type: Pin type for the variable value pin
            previous_member: Member name the node referenced before this call
        """
        if self.kind == NodeKind.GENERIC:
            return

        old_pins = self.pins
        self.allocate_default_pins(value_type)
        claimed = set()

        for new_pin in self.pins:
            candidates = [new_pin.name]
            if previous_member and new_pin.name == self.member_name:
                candidates.append(previous_member)
            for index, old_pin in enumerate(old_pins):
                if index in claimed:
                    continue
                # A variable named 'execute' or 'then' must not take over the exec pins
                if (old_pin.direction == new_pin.direction and old_pin.name in candidates
                        and old_pin.is_exec == new_pin.is_exec):
                    claimed.add(index)
                    new_pin.id = old_pin.id
                    new_pin.linked_to = list(old_pin.linked_to)
                    new_pin.default_value = old_pin.default_value
                    break


class Graph(BaseModel):
    """Blueprint graph (event graph, function graph or macro)"""
    name: str = Field(..., description="Graph name (e.g. 'EventGraph')")
    graph_type: GraphType = Field(default=GraphType.EVENT_GRAPH, description="Graph type")
    nodes: List[GraphNode] = Field(default_factory=list, description="Nodes in this graph")

    @property
    def node_count(self) -> int:
        return len(self.nodes)


class BlueprintVariable(BaseModel):
    """Blueprint member variable"""
    name: str = Field(..., description="Variable name")
    var_type: str = Field(default="bool", description="Pin category of the variable")
    default_value: str = Field(default="", description="Default value as text")
    is_array: bool = Field(default=False, description="Whether the variable is an array")


class Blueprint(BaseModel):
    """
    Blueprint asset

    The container every patch operation targets. Owned by the host editor;
    the patch engine only reaches it through GraphModel.
    """
    name: str = Field(..., description="Asset name (e.g. 'BP_Player')")
    path: str = Field(default="", description="Object path (e.g. '/Game/Blueprints/BP_Player')")
    parent_class: Optional[str] = Field(None, description="Parent class name")
    variables: List[BlueprintVariable] = Field(default_factory=list, description="Member variables")
    graphs: List[Graph] = Field(default_factory=list, description="Event, function and macro graphs")
    modified: bool = Field(default=False, description="Dirty flag")
    modification_count: int = Field(default=0, description="Times the blueprint was marked modified")

    def variable_types(self) -> Dict[str, str]:
        return {variable.name: variable.var_type for variable in self.variables}

    def all_nodes(self) -> List[GraphNode]:
        return [node for graph in self.graphs for node in graph.nodes]


# Editor node classes per kind
NODE_CLASS_NAMES: Dict[NodeKind, str] = {
    NodeKind.VARIABLE_GET: "K2Node_VariableGet",
    NodeKind.VARIABLE_SET: "K2Node_VariableSet",
    NodeKind.FUNCTION_CALL: "K2Node_CallFunction",
    NodeKind.EVENT: "K2Node_Event",
    NodeKind.GENERIC: "K2Node",
}
