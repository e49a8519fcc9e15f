"""Shared fixtures: a small blueprint with an event graph and a function graph"""
import pytest

from core.graph import Blueprint, BlueprintVariable, Graph, GraphModel, GraphType, NodeKind
from runtime.patching.notifications import NotificationSink
from runtime.patching.patch_engine import PatchEngine


class RecordingSink(NotificationSink):
    def __init__(self):
        self.successes = []
        self.failures = []

    def report_success(self, op_count):
        self.successes.append(op_count)

    def report_failure(self, patch_text, reason):
        self.failures.append((patch_text, reason))


def build_test_blueprint(model: GraphModel) -> Blueprint:
    blueprint = model.add_blueprint(Blueprint(
        name="TestBlueprint",
        path="/Game/Blueprints/TestBlueprint",
        parent_class="Actor",
        variables=[
            BlueprintVariable(name="OldVar", var_type="float", default_value="0.0"),
            BlueprintVariable(name="Health", var_type="float", default_value="100.0"),
        ],
        graphs=[
            Graph(name="EventGraph", graph_type=GraphType.EVENT_GRAPH),
            Graph(name="UpdateHealth", graph_type=GraphType.FUNCTION),
        ],
    ))
    event_graph, function_graph = blueprint.graphs

    begin_play = model.create_node(event_graph, NodeKind.EVENT, {"member_name": "ReceiveBeginPlay"})
    model.create_node(event_graph, NodeKind.VARIABLE_GET, {"member_name": "OldVar", "pos_x": 200, "pos_y": 0})
    set_health = model.create_node(event_graph, NodeKind.VARIABLE_SET, {"member_name": "Health", "pos_x": 400})
    model.link_pins(begin_play.find_pin("then"), set_health.find_pin("execute"))

    get_health = model.create_node(function_graph, NodeKind.VARIABLE_GET, {"member_name": "Health"})
    set_old = model.create_node(function_graph, NodeKind.VARIABLE_SET, {"member_name": "OldVar", "pos_x": 300})
    model.link_pins(get_health.find_pin("Health"), set_old.find_pin("OldVar"))
    return blueprint


@pytest.fixture
def model():
    graph_model = GraphModel()
    build_test_blueprint(graph_model)
    return graph_model


@pytest.fixture
def blueprint(model):
    return model.resolve_blueprint("TestBlueprint")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(model, sink):
    return PatchEngine(model, sink)
