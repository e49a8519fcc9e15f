import json
import sys

import pytest

from core.config import PilotSettings
from core.patch import PatchErrorCode, PatchOperationType
from core.graph import PinDirection
from runtime.patching import handlers
from runtime.patching.notifications import NotificationSink
from runtime.patching.patch_engine import PatchEngine, PatchEngineState


def patch(*operations, metadata=None):
    document = {"operations": list(operations)}
    if metadata is not None:
        document["metadata"] = metadata
    return json.dumps(document)


def rename(old, new, blueprint="TestBlueprint"):
    return {"type": "variable_rename", "blueprint": blueprint, "old_name": old, "new_name": new}


# =========================================================================
# Rejected input
# =========================================================================

DEEPLY_NESTED = "[" * 100000
HUGE_NUMBER = "{\"type\": \"node_add\", \"blueprint\": \"TestBlueprint\", \"x\": " + "9" * 5000 + "}"
needs_int_digit_limit = pytest.mark.skipif(
    not hasattr(sys, "set_int_max_str_digits"), reason="interpreter has no integer digit limit"
)


@pytest.mark.parametrize("text", [
    "", "{ invalid json }", "[]", "{}", "{\"operations\": []}",
    DEEPLY_NESTED,
    pytest.param(HUGE_NUMBER, marks=needs_int_digit_limit),
])
def test_empty_or_invalid_input_is_rejected(engine, model, blueprint, sink, text):
    before = blueprint.model_dump()

    assert not engine.can_apply_patch(text)
    assert not engine.apply_patch(text)

    assert engine.last_error_code == PatchErrorCode.EMPTY_PATCH
    assert engine.state == PatchEngineState.ROLLED_BACK
    assert blueprint.model_dump() == before
    assert not engine.transaction.is_open
    assert sink.failures == [] and sink.successes == []


def test_malformed_json_message_is_distinguishable(engine):
    engine.apply_patch("{ invalid json }")
    malformed = engine.get_last_error()
    engine.apply_patch("{}")
    empty = engine.get_last_error()

    assert malformed.startswith("Invalid JSON format")
    assert empty == "No valid operations found in patch JSON"


# =========================================================================
# Variable rename
# =========================================================================

def test_rename_scenario(engine, model, blueprint, sink):
    text = json.dumps(rename("OldVar", "NewVar"))

    assert engine.apply_patch(text)

    names = [variable.name for variable in blueprint.variables]
    assert "OldVar" not in names and "NewVar" in names
    assert model.find_node(blueprint, "K2Node_VariableGet_0").member_name == "NewVar"
    assert model.find_node(blueprint, "K2Node_VariableSet_1").member_name == "NewVar"
    assert blueprint.modified
    assert engine.state == PatchEngineState.COMMITTED
    assert engine.get_last_error() == ""
    assert sink.successes == [1]


def test_rename_round_trip_restores_bindings(engine, model, blueprint):
    bindings = {node.name: node.member_name for node in blueprint.all_nodes()}
    set_health = model.find_node(blueprint, "K2Node_VariableSet_0")
    execute_links = list(set_health.find_pin("execute").linked_to)
    value_pin_id = set_health.find_pin("Health", PinDirection.INPUT).id

    assert engine.apply_patch(json.dumps(rename("Health", "PlayerHealth")))
    assert set_health.member_name == "PlayerHealth"
    assert engine.apply_patch(json.dumps(rename("PlayerHealth", "Health")))

    assert {node.name: node.member_name for node in blueprint.all_nodes()} == bindings
    assert set_health.find_pin("execute").linked_to == execute_links
    assert set_health.find_pin("Health", PinDirection.INPUT).id == value_pin_id


def test_rename_chain_applies_sequentially(engine, blueprint):
    text = patch(rename("OldVar", "Armor"), rename("Armor", "Shield"))

    assert not engine.can_apply_patch(text)
    assert engine.last_error_code == PatchErrorCode.VARIABLE_NOT_FOUND
    assert engine.apply_patch(text)
    assert [variable.name for variable in blueprint.variables] == ["Shield", "Health"]


def test_rename_collision_rejected(engine, blueprint):
    before = blueprint.model_dump()

    assert not engine.apply_patch(json.dumps(rename("OldVar", "Health")))

    assert engine.last_error_code == PatchErrorCode.VARIABLE_ALREADY_EXISTS
    assert blueprint.model_dump() == before


# =========================================================================
# Node add / delete
# =========================================================================

def test_node_add_scenario(engine, model, blueprint):
    graph = model.find_graph(blueprint, "EventGraph")
    count = graph.node_count

    assert engine.apply_patch(patch({
        "type": "node_add", "blueprint": "TestBlueprint", "node_type": "VariableGet",
        "variable_name": "Health", "graph": "EventGraph", "position": {"x": 100, "y": 200},
    }))

    assert graph.node_count == count + 1
    node = graph.nodes[-1]
    assert node.member_name == "Health"
    assert (node.pos_x, node.pos_y) == (100.0, 200.0)
    assert node.pins[0].pin_type == "float"


def test_node_add_function_call_defaults_to_event_graph(engine, model, blueprint):
    assert engine.apply_patch(json.dumps({
        "type": "node_add", "blueprint": "/Game/Blueprints/TestBlueprint",
        "node_type": "FunctionCall", "function_name": "PrintString",
    }))

    node = model.find_graph(blueprint, "EventGraph").nodes[-1]
    assert node.name == "K2Node_CallFunction_0"
    assert node.member_name == "PrintString"
    assert (node.pos_x, node.pos_y) == (0.0, 0.0)


def test_node_add_to_missing_graph(engine):
    assert not engine.apply_patch(json.dumps({
        "type": "node_add", "blueprint": "TestBlueprint", "node_type": "VariableGet",
        "variable_name": "Health", "graph": "Construction",
    }))
    assert engine.last_error_code == PatchErrorCode.GRAPH_NOT_FOUND


def test_node_delete(engine, model, blueprint):
    assert engine.apply_patch(json.dumps({
        "type": "node_delete", "blueprint": "TestBlueprint", "node_id": "K2Node_VariableGet_1",
    }))

    assert model.find_node(blueprint, "K2Node_VariableGet_1") is None
    assert model.find_node(blueprint, "K2Node_VariableSet_1").find_pin("OldVar").linked_to == []


# =========================================================================
# Atomicity
# =========================================================================

def test_failed_batch_rolls_back_earlier_operations(engine, blueprint, sink):
    before = blueprint.model_dump()
    text = patch(
        rename("OldVar", "NewVar"),
        {"type": "node_delete", "blueprint": "TestBlueprint", "node_id": "K2Node_Missing"},
        {"type": "node_add", "blueprint": "TestBlueprint", "node_type": "VariableGet", "variable_name": "Health"},
    )

    outcome = engine.apply(text)

    assert not outcome.success
    assert outcome.error_code == PatchErrorCode.NODE_NOT_FOUND
    assert outcome.operations_applied == 1
    assert outcome.operation_count == 3
    assert blueprint.model_dump() == before
    assert engine.state == PatchEngineState.ROLLED_BACK
    assert sink.failures == [(text, "Node not found: K2Node_Missing")]
    assert not engine.history.can_undo


@pytest.mark.parametrize("kind", ["node_modify", "connection_add", "connection_remove"])
def test_unimplemented_operations_fail(engine, blueprint, kind):
    before = blueprint.model_dump()

    assert not engine.apply_patch(json.dumps({"type": kind, "blueprint": "TestBlueprint", "node_id": "x"}))

    assert engine.last_error_code == PatchErrorCode.NOT_IMPLEMENTED
    assert "not yet implemented" in engine.get_last_error()
    assert blueprint.model_dump() == before


@pytest.mark.parametrize("kind", ["node_modify", "connection_add", "connection_remove"])
def test_unimplemented_operations_fail_before_blueprint_lookup(engine, kind):
    text = json.dumps({"type": kind, "blueprint": "/Game/Nope"})

    assert not engine.can_apply_patch(text)
    assert engine.last_error_code == PatchErrorCode.NOT_IMPLEMENTED
    assert not engine.apply_patch(text)
    assert engine.last_error_code == PatchErrorCode.NOT_IMPLEMENTED


def test_failed_batch_keeps_graph_and_node_handles_live(engine, model, blueprint):
    graph = model.find_graph(blueprint, "EventGraph")
    count = graph.node_count
    get_old = model.find_node(blueprint, "K2Node_VariableGet_0")
    variable = model.find_variable(blueprint, "OldVar")
    text = patch(
        {"type": "node_add", "blueprint": "TestBlueprint", "node_type": "VariableGet", "variable_name": "Health"},
        rename("OldVar", "NewVar"),
        {"type": "node_delete", "blueprint": "TestBlueprint", "node_id": "K2Node_Event_0"},
        {"type": "node_delete", "blueprint": "TestBlueprint", "node_id": "K2Node_Missing"},
    )

    assert not engine.apply_patch(text)

    assert model.find_graph(blueprint, "EventGraph") is graph
    assert graph.node_count == count
    assert model.find_node(blueprint, "K2Node_VariableGet_0") is get_old
    assert get_old.member_name == "OldVar"
    assert get_old.pins[0].name == "OldVar"
    assert model.find_variable(blueprint, "OldVar") is variable
    assert model.find_node(blueprint, "K2Node_Event_0").find_pin("then").linked_to


def test_unknown_operation_type(engine):
    assert not engine.apply_patch(json.dumps({"type": "teleport", "blueprint": "TestBlueprint"}))
    assert engine.last_error_code == PatchErrorCode.UNKNOWN_OPERATION_TYPE


def test_handler_exception_rolls_back_and_propagates(engine, blueprint, monkeypatch):
    before = blueprint.model_dump()

    def explode(graph_model, op):
        graph_model.find_variable(blueprint, "Health").name = "Broken"
        raise RuntimeError("boom")

    monkeypatch.setitem(handlers.HANDLERS, PatchOperationType.VARIABLE_RENAME, explode)

    with pytest.raises(RuntimeError):
        engine.apply_patch(json.dumps(rename("OldVar", "NewVar")))

    assert blueprint.model_dump() == before
    assert not engine.transaction.is_open
    assert not engine.is_busy
    assert engine.apply_patch(json.dumps({
        "type": "node_delete", "blueprint": "TestBlueprint", "node_id": "K2Node_VariableGet_0",
    }))


# =========================================================================
# Dry run, errors, re-entrancy, undo
# =========================================================================

def test_can_apply_patch_never_mutates(engine, blueprint):
    before = blueprint.model_dump()

    assert engine.can_apply_patch(json.dumps(rename("OldVar", "NewVar")))
    assert not engine.can_apply_patch(json.dumps(rename("Missing", "NewVar")))

    assert blueprint.model_dump() == before
    assert engine.state == PatchEngineState.IDLE


def test_can_apply_patch_reports_missing_blueprint(engine):
    assert not engine.can_apply_patch(json.dumps(rename("OldVar", "NewVar", blueprint="/Game/Nope")))

    assert engine.last_error_code == PatchErrorCode.BLUEPRINT_NOT_FOUND
    assert engine.get_last_error() == "Blueprint not found: /Game/Nope"


def test_last_error_cleared_on_next_call(engine):
    engine.apply_patch("{}")
    assert engine.get_last_error()

    assert engine.can_apply_patch(json.dumps(rename("OldVar", "NewVar")))
    assert engine.get_last_error() == ""
    assert engine.last_error_code is None


def test_reentrant_apply_is_rejected(model, blueprint):
    class ReentrantSink(NotificationSink):
        def __init__(self):
            self.nested = []

        def report_success(self, op_count):
            self.nested.append(engine.apply(json.dumps(rename("NewVar", "Again"))))
            self.nested.append(engine.can_apply_patch(json.dumps(rename("NewVar", "Again"))))

    sink = ReentrantSink()
    engine = PatchEngine(model, sink)

    assert engine.apply_patch(json.dumps(rename("OldVar", "NewVar")))

    nested_outcome, nested_dry_run = sink.nested
    assert nested_outcome.error_code == PatchErrorCode.ENGINE_BUSY
    assert nested_dry_run is False
    assert model.find_variable(blueprint, "Again") is None
    assert engine.get_last_error() == ""


def test_committed_patch_can_be_undone(engine, blueprint):
    before = blueprint.model_dump()

    assert engine.apply_patch(json.dumps(rename("OldVar", "NewVar")))
    assert engine.history.labels() == ["Apply AI Patch"]
    engine.history.undo()

    assert blueprint.model_dump() == before


def test_transaction_label_from_settings(model):
    engine = PatchEngine(model, settings=PilotSettings(transaction_label="SurrealPilot Patch", undo_depth=3))

    assert engine.apply_patch(json.dumps(rename("OldVar", "NewVar")))
    assert engine.history.labels() == ["SurrealPilot Patch"]
    assert engine.history.max_entries == 3


def test_outcome_carries_metadata(engine):
    outcome = engine.apply(patch(rename("OldVar", "NewVar"), metadata={"generated_by": "SurrealPilot AI"}))

    assert outcome.success
    assert outcome.operations_applied == 1
    assert outcome.metadata == {"generated_by": "SurrealPilot AI"}
    assert engine.last_outcome is outcome
