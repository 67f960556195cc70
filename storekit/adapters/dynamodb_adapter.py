import boto3
from botocore.exceptions import BotoCoreError, ClientError
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple
from storekit.conditions import (
    build_dynamo_filter, build_dynamo_increment, build_dynamo_key_exists, build_dynamo_search,
    build_dynamo_set, check_conditions, require_amount, require_bulk, require_conditions,
    require_page, require_record, require_search, sort_records,
)
from storekit.config import Config
from storekit.exceptions import BackendError, TransientBackendError, ValidationError
from storekit.profile import DatabaseProfile
from storekit.transactions import ActionLike, ActionType, TransactionAction, parse_actions
import logging

logger = logging.getLogger(__name__)

TRANSIENT_ERROR_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "TransactionConflictException",
}

def to_dynamo(value: Any) -> Any:
    """boto3 rejects floats; numbers go over the wire as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value

def error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")

class DynamoDBAdapter:
    """Wide-column driver on a boto3 DynamoDB ``Table`` resource.

    Conditions naming exactly the primary key go straight to the item;
    anything else is a paginated scan with a filter expression. Sorting and
    paging of ``get_all`` happen in memory after the scan.
    """

    def __init__(self, table_name: str, profile: Optional[DatabaseProfile] = None,
                 table: Any = None, resource: Any = None):
        self.table_name = table_name
        if table is None:
            self.profile = profile or DatabaseProfile.dynamodb()
            if resource is None:
                resource = boto3.resource(
                    "dynamodb",
                    region_name=self.profile.region,
                    endpoint_url=self.profile.endpoint_url,
                )
            table = resource.Table(table_name)
        else:
            self.profile = profile
        self.table = table
        self._key_names: Optional[List[str]] = None

    def _handle_error(self, e: Exception, operation: str):
        logger.error(f"{operation} failed on {self.table_name}: {e}")
        if isinstance(e, ClientError) and error_code(e) in TRANSIENT_ERROR_CODES:
            raise TransientBackendError(f"Transient error during {operation} on {self.table_name}: {e}") from e
        raise BackendError(f"Error during {operation} on {self.table_name}: {e}") from e

    @property
    def key_names(self) -> List[str]:
        """Primary key attribute names, from the table's key schema."""
        if self._key_names is None:
            try:
                self._key_names = [key["AttributeName"] for key in self.table.key_schema]
            except (ClientError, BotoCoreError) as e:
                self._handle_error(e, "describe_table")
        return self._key_names

    def _is_key(self, conditions: Dict[str, Any]) -> bool:
        return set(conditions) == set(self.key_names)

    def _key_of(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {key: item[key] for key in self.key_names}

    def _reject_key_fields(self, data: Dict[str, Any], operation: str):
        touched = set(data) & set(self.key_names)
        if touched:
            raise ValidationError(f"{operation} cannot modify key attribute(s) {sorted(touched)} on {self.table_name}")

    def _scan(self, conditions: Optional[Dict[str, Any]] = None, search: Optional[tuple] = None,
              **extra) -> Iterator[Dict[str, Any]]:
        """Yield each scan page, following LastEvaluatedKey."""
        expressions = []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        if conditions:
            expression, cond_names, cond_values = build_dynamo_filter(to_dynamo(conditions))
            expressions.append(expression)
            names.update(cond_names)
            values.update(cond_values)
        if search:
            expression, search_names, search_values = build_dynamo_search(*search)
            expressions.append(f"({expression})")
            names.update(search_names)
            values.update(search_values)
        params = dict(extra)
        if expressions:
            params.update(
                FilterExpression=" AND ".join(expressions),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        try:
            while True:
                page = self.table.scan(**params)
                yield page
                last_key = page.get("LastEvaluatedKey")
                if not last_key:
                    break
                params["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            self._handle_error(e, "scan")

    def _scan_items(self, conditions: Optional[Dict[str, Any]] = None, search: Optional[tuple] = None) -> Iterator[Dict[str, Any]]:
        for page in self._scan(conditions, search):
            yield from page.get("Items", [])

    def _conditional(self, write: Callable[..., Any], operation: str,
                     match: Optional[Dict[str, Any]] = None, **params) -> bool:
        """Run a write guarded by attribute_exists on the key; False when no item matched.

        With ``match``, the item must also still equal those conditions when written.
        """
        expression, names = build_dynamo_key_exists(self.key_names)
        params["ExpressionAttributeNames"] = {**params.get("ExpressionAttributeNames", {}), **names}
        if match:
            match_expression, match_names, match_values = build_dynamo_filter(to_dynamo(match), prefix="c")
            expression = f"{expression} AND {match_expression}"
            params["ExpressionAttributeNames"].update(match_names)
            params["ExpressionAttributeValues"] = {**params.get("ExpressionAttributeValues", {}), **match_values}
        params["ConditionExpression"] = expression
        try:
            write(**params)
            return True
        except ClientError as e:
            if error_code(e) == "ConditionalCheckFailedException":
                logger.debug(f"{operation} on {self.table_name} matched no item")
                return False
            self._handle_error(e, operation)
        except BotoCoreError as e:
            self._handle_error(e, operation)

    def _targets(self, conditions: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Keys of the items the conditions address, and the conditions each write must still meet."""
        if self._is_key(conditions):
            return [to_dynamo(conditions)], None
        return [self._key_of(item) for item in self._scan_items(conditions)], conditions

    def _update_each(self, conditions: Dict[str, Any], expression: str, names: Dict[str, str],
                     values: Dict[str, Any], operation: str) -> bool:
        updated = False
        keys, match = self._targets(conditions)
        for key in keys:
            logger.debug(f"{operation} on {self.table_name} key={key}: {expression}")
            if self._conditional(
                self.table.update_item, operation, match,
                Key=key,
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            ):
                updated = True
        return updated

    # --- single operations ------------------------------------------------

    def _require_key(self, record: Dict[str, Any]):
        missing = [key for key in self.key_names if key not in record]
        if missing:
            raise ValidationError(f"Record for {self.table_name} is missing key attribute(s) {missing}")

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        require_record(record)
        self._require_key(record)
        logger.debug(f"create on {self.table_name}")
        try:
            self.table.put_item(Item=to_dynamo(record))
        except (ClientError, BotoCoreError) as e:
            self._handle_error(e, "create")
        return self._key_of(record)

    def bulk_insert(self, records: List[Dict[str, Any]]) -> int:
        require_bulk(records)
        for record in records:
            self._require_key(record)
        logger.debug(f"bulk_insert of {len(records)} items on {self.table_name}")
        try:
            with self.table.batch_writer() as batch:
                for record in records:
                    batch.put_item(Item=to_dynamo(record))
        except (ClientError, BotoCoreError) as e:
            self._handle_error(e, "bulk_insert")
        return len(records)

    def get(self, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        require_conditions(conditions, "get")
        if self._is_key(conditions):
            try:
                return self.table.get_item(Key=to_dynamo(conditions)).get("Item")
            except (ClientError, BotoCoreError) as e:
                self._handle_error(e, "get")
        return next(self._scan_items(conditions), None)

    def get_all(self, conditions: Optional[Dict[str, Any]] = None, sort: Optional[Dict[str, Any]] = None,
                limit: int = Config.DEFAULT_LIMIT, offset: int = Config.DEFAULT_OFFSET) -> List[Dict[str, Any]]:
        check_conditions(conditions)
        require_page(limit, offset)
        items = sort_records(list(self._scan_items(conditions)), sort)
        return items[offset:offset + limit]

    def update(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        require_record(data)
        require_conditions(conditions, "update")
        self._reject_key_fields(data, "update")
        expression, names, values = build_dynamo_set(to_dynamo(data))
        return self._update_each(conditions, expression, names, values, "update")

    def increment(self, field: str, amount: Any, conditions: Dict[str, Any]) -> bool:
        require_amount(amount)
        require_conditions(conditions, "increment")
        self._reject_key_fields({field: amount}, "increment")
        expression, names, values = build_dynamo_increment(to_dynamo({field: amount}))
        return self._update_each(conditions, expression, names, values, "increment")

    def delete(self, conditions: Dict[str, Any]) -> bool:
        require_conditions(conditions, "delete")
        deleted = False
        keys, match = self._targets(conditions)
        for key in keys:
            logger.debug(f"delete on {self.table_name} key={key}")
            if self._conditional(self.table.delete_item, "delete", match, Key=key):
                deleted = True
        return deleted

    def soft_delete(self, conditions: Dict[str, Any], deleted_field: str = Config.DEFAULT_DELETED_FIELD) -> bool:
        return self.update({deleted_field: True}, conditions)

    def count(self, conditions: Optional[Dict[str, Any]] = None) -> int:
        check_conditions(conditions)
        return sum(page.get("Count", 0) for page in self._scan(conditions, Select="COUNT"))

    def exists(self, conditions: Optional[Dict[str, Any]] = None) -> bool:
        if conditions:
            return self.get(conditions) is not None
        return self.count() > 0

    def search(self, query: str, fields: Sequence[str]) -> List[Dict[str, Any]]:
        """Substring match with DynamoDB ``contains``, which is case-sensitive."""
        require_search(query, fields)
        return list(self._scan_items(search=(query, list(fields))))

    # --- transaction ------------------------------------------------------

    def _transact_item(self, action: TransactionAction) -> Dict[str, Any]:
        if action.method == ActionType.CREATE:
            return {"Put": {"TableName": self.table_name, "Item": to_dynamo(action.data)}}
        if not self._is_key(action.condition):
            raise ValidationError(
                f"Transaction {action.method.value} on {self.table_name} must address an item by its key {self.key_names}"
            )
        key = to_dynamo(action.condition)
        exists_expression, exists_names = build_dynamo_key_exists(self.key_names)
        if action.method == ActionType.DELETE:
            return {"Delete": {"TableName": self.table_name, "Key": key}}
        self._reject_key_fields(action.data, action.method.value)
        if action.method == ActionType.UPDATE:
            expression, names, values = build_dynamo_set(to_dynamo(action.data))
        else:
            expression, names, values = build_dynamo_increment(to_dynamo(action.data))
        return {
            "Update": {
                "TableName": self.table_name,
                "Key": key,
                "UpdateExpression": expression,
                "ConditionExpression": exists_expression,
                "ExpressionAttributeNames": {**names, **exists_names},
                "ExpressionAttributeValues": values,
            }
        }

    def transaction(self, actions: Sequence[ActionLike]) -> bool:
        """Submit every action in one TransactWriteItems request; all succeed or none do."""
        parsed = parse_actions(actions)
        if len(parsed) > Config.DYNAMODB_TRANSACTION_LIMIT:
            raise ValidationError(
                f"DynamoDB transactions accept at most {Config.DYNAMODB_TRANSACTION_LIMIT} actions, got {len(parsed)}"
            )
        items = [self._transact_item(action) for action in parsed]
        try:
            self.table.meta.client.transact_write_items(TransactItems=items)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Transaction on {self.table_name} cancelled; no action applied")
            self._handle_error(e, "transaction")
        logger.debug(f"Transaction on {self.table_name} committed {len(items)} actions")
        return True
