# storekit/transactions.py
"""Transaction actions.

A transaction is an ordered list of actions applied as one atomic unit.
Each driver runs the parsed list with its own native primitive (SQL
BEGIN/COMMIT, TransactWriteItems, a MongoDB session); this module only
validates and normalizes the list, before any backend work starts.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from storekit.conditions import require_amount, require_conditions, require_record
from storekit.exceptions import InvalidActionError, ValidationError

class ActionType(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INCREMENT = "increment"

@dataclass(frozen=True)
class TransactionAction:
    """One step of a transaction.

    ``increment`` carries its deltas in ``data`` as ``{field: amount, ...}``;
    every listed field is incremented.
    """
    method: ActionType
    data: Optional[Dict[str, Any]] = None
    condition: Optional[Dict[str, Any]] = None

    @staticmethod
    def create(data: Dict[str, Any]) -> 'TransactionAction':
        return TransactionAction(ActionType.CREATE, data=data)

    @staticmethod
    def update(data: Dict[str, Any], condition: Dict[str, Any]) -> 'TransactionAction':
        return TransactionAction(ActionType.UPDATE, data=data, condition=condition)

    @staticmethod
    def delete(condition: Dict[str, Any]) -> 'TransactionAction':
        return TransactionAction(ActionType.DELETE, condition=condition)

    @staticmethod
    def increment(deltas: Dict[str, Any], condition: Dict[str, Any]) -> 'TransactionAction':
        return TransactionAction(ActionType.INCREMENT, data=deltas, condition=condition)

ActionLike = Union[TransactionAction, Mapping[str, Any]]

def _method(raw: Any) -> ActionType:
    if isinstance(raw, ActionType):
        return raw
    try:
        return ActionType(raw)
    except ValueError:
        raise InvalidActionError(f"Invalid transaction method: {raw!r}")

def _validate(action: TransactionAction, index: int):
    where = f"Transaction action {index} ({action.method.value})"
    try:
        if action.method in (ActionType.CREATE, ActionType.UPDATE, ActionType.INCREMENT):
            require_record(action.data)
        if action.method in (ActionType.UPDATE, ActionType.DELETE, ActionType.INCREMENT):
            require_conditions(action.condition, where)
        if action.method == ActionType.INCREMENT:
            for amount in action.data.values():
                require_amount(amount)
    except ValidationError as e:
        raise ValidationError(f"{where}: {e}") from e

def parse_actions(actions: Iterable[ActionLike]) -> List[TransactionAction]:
    """Normalize and validate a transaction's actions.

    Args:
        actions: TransactionAction objects or mappings with ``method``,
            ``data`` and ``condition`` keys.

    Returns:
        The actions as TransactionAction objects, in order.

    Raises:
        InvalidActionError: An action has an unrecognized method.
        ValidationError: The list is empty or an action lacks its data/condition.
    """
    parsed = []
    for index, action in enumerate(actions or []):
        if isinstance(action, TransactionAction):
            item = TransactionAction(_method(action.method), action.data, action.condition)
        elif isinstance(action, Mapping):
            item = TransactionAction(_method(action.get("method")), action.get("data"), action.get("condition"))
        else:
            raise InvalidActionError(f"Transaction action {index} is not an action: {action!r}")
        _validate(item, index)
        parsed.append(item)
    if not parsed:
        raise ValidationError("Transaction requires at least one action")
    return parsed
