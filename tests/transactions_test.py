import pytest
from storekit.exceptions import InvalidActionError, ValidationError
from storekit.transactions import ActionType, TransactionAction, parse_actions

def test_parses_mappings_and_actions_in_order():
    parsed = parse_actions([
        {"method": "create", "data": {"x": 1}},
        TransactionAction.update({"x": 2}, {"x": 1}),
        {"method": ActionType.INCREMENT, "data": {"x": 1, "y": -1}, "condition": {"id": 1}},
        {"method": "delete", "condition": {"x": 2}},
    ])
    assert [action.method for action in parsed] == [
        ActionType.CREATE, ActionType.UPDATE, ActionType.INCREMENT, ActionType.DELETE
    ]
    assert parsed[2].data == {"x": 1, "y": -1}

def test_unknown_method_is_invalid_action():
    with pytest.raises(InvalidActionError):
        parse_actions([{"method": "create", "data": {"x": 1}}, {"method": "merge", "data": {"x": 1}}])
    with pytest.raises(InvalidActionError):
        parse_actions([{"data": {"x": 1}}])
    with pytest.raises(InvalidActionError):
        parse_actions(["create"])

def test_required_parts_per_method():
    with pytest.raises(ValidationError):
        parse_actions([{"method": "create"}])
    with pytest.raises(ValidationError):
        parse_actions([{"method": "update", "data": {"x": 1}}])
    with pytest.raises(ValidationError):
        parse_actions([{"method": "delete", "condition": {}}])
    with pytest.raises(ValidationError):
        parse_actions([{"method": "increment", "condition": {"id": 1}}])

def test_increment_amounts_must_be_numeric():
    with pytest.raises(ValidationError):
        parse_actions([{"method": "increment", "data": {"x": "1"}, "condition": {"id": 1}}])

def test_empty_transaction_is_rejected():
    with pytest.raises(ValidationError):
        parse_actions([])
