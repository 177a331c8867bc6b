from dataclasses import dataclass, field
from decimal import Decimal

from botocore.exceptions import ClientError

from .base_client import AWSBaseClient

# DynamoDB rejects transactions with more items than this
MAX_TRANSACT_ITEMS = 100


class DynamoDBError(Exception):
    """Base class for store errors raised by DynamoDBClient."""


class ConditionFailedError(DynamoDBError):
    """A conditional write was rejected because its condition did not hold."""


class TransactionCancelledError(DynamoDBError):
    """
    A TransactWriteItems call was cancelled. `reasons` holds one code per
    submitted item, in order ("None" for items that were not the cause).
    """

    def __init__(self, reasons):
        self.reasons = list(reasons)
        super().__init__(f"Transaction cancelled: {self.reasons}")

    def failed_condition_at(self, index):
        return index < len(self.reasons) and self.reasons[index] == "ConditionalCheckFailed"


@dataclass
class UpdateOp:
    """
    One update against a single item, usable on its own or inside a transaction.

    set_fields    -> SET attr = value
    add_fields    -> ADD attr value (atomic relative delta, creates the attribute at 0)
    must_exist    -> the item must already exist
    expected      -> attr must equal value
    expected_not  -> attr must be absent or differ from value
    """
    table: str
    key: dict
    set_fields: dict = field(default_factory=dict)
    add_fields: dict = field(default_factory=dict)
    must_exist: bool = False
    expected: dict = field(default_factory=dict)
    expected_not: dict = field(default_factory=dict)


def _to_store(data):
    """Recursively convert ints/floats to Decimal for DynamoDB writes."""
    if isinstance(data, dict):
        return {k: _to_store(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_to_store(v) for v in data]
    if isinstance(data, bool):
        return data
    if isinstance(data, int):
        return Decimal(data)
    if isinstance(data, float):
        return Decimal(str(data))
    return data


def build_update_params(op):
    """Translate an UpdateOp into update_item keyword arguments."""
    names, values = {}, {}

    def name_of(attr):
        placeholder = f"#n{len(names)}"
        names[placeholder] = attr
        return placeholder

    def value_of(value):
        placeholder = f":v{len(values)}"
        values[placeholder] = _to_store(value)
        return placeholder

    clauses = []
    if op.set_fields:
        assignments = [f"{name_of(a)} = {value_of(v)}" for a, v in op.set_fields.items()]
        clauses.append("SET " + ", ".join(assignments))
    if op.add_fields:
        increments = [f"{name_of(a)} {value_of(v)}" for a, v in op.add_fields.items()]
        clauses.append("ADD " + ", ".join(increments))
    if not clauses:
        raise ValueError("UpdateOp needs at least one SET or ADD field")

    conditions = []
    if op.must_exist:
        first_key = next(iter(op.key))
        conditions.append(f"attribute_exists({name_of(first_key)})")
    for attr, expected in op.expected.items():
        conditions.append(f"{name_of(attr)} = {value_of(expected)}")
    for attr, unwanted in op.expected_not.items():
        placeholder = name_of(attr)
        conditions.append(
            f"(attribute_not_exists({placeholder}) OR {placeholder} <> {value_of(unwanted)})"
        )

    params = {
        "Key": op.key,
        "UpdateExpression": " ".join(clauses),
        "ExpressionAttributeNames": names,
        "ExpressionAttributeValues": values,
    }
    if conditions:
        params["ConditionExpression"] = " AND ".join(conditions)
    return params


def _error_code(error):
    return error.response.get("Error", {}).get("Code", "")


class DynamoDBClient(AWSBaseClient):
    def __init__(self, **kwargs):
        super().__init__("dynamodb", **kwargs)

    def _deserialize(self, value):
        """Convert DynamoDB data into plain Python types, keeping fractions exact."""
        if isinstance(value, dict):
            return {k: self._deserialize(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._deserialize(v) for v in value]
        if isinstance(value, Decimal):
            return int(value) if value % 1 == 0 else value
        return value

    # reads

    def get(self, table, key, consistent=True):
        tbl = self.resource.Table(table)
        resp = tbl.get_item(Key=key, ConsistentRead=consistent)
        item = resp.get("Item")
        return self._deserialize(item) if item else {}

    def batch_get(self, table, keys):
        """Fetch many items by key; missing keys are simply absent from the result."""
        if not keys:
            return []
        resource = self.resource
        found = []
        # batch_get_item accepts at most 100 keys per request
        for start in range(0, len(keys), 100):
            request = {table: {"Keys": keys[start:start + 100], "ConsistentRead": True}}
            while request:
                resp = resource.batch_get_item(RequestItems=request)
                found.extend(resp.get("Responses", {}).get(table, []))
                request = resp.get("UnprocessedKeys") or None
        return [self._deserialize(i) for i in found]

    # writes

    def put(self, table, item, unique_key=None):
        """
        Write a whole item. With `unique_key` the write only succeeds when no
        item with that key attribute exists yet.
        """
        tbl = self.resource.Table(table)
        params = {"Item": _to_store(item)}
        if unique_key:
            params["ConditionExpression"] = "attribute_not_exists(#k)"
            params["ExpressionAttributeNames"] = {"#k": unique_key}
        try:
            return tbl.put_item(**params)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise ConditionFailedError(f"{table} item already exists") from e
            raise

    def update(self, op):
        """Apply a single UpdateOp and return the item as it is after the write."""
        tbl = self.resource.Table(op.table)
        try:
            resp = tbl.update_item(ReturnValues="ALL_NEW", **build_update_params(op))
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise ConditionFailedError(f"Condition failed on {op.table} {op.key}") from e
            raise
        return self._deserialize(resp.get("Attributes", {}))

    def transact(self, ops):
        """Apply UpdateOps all-or-nothing with TransactWriteItems."""
        if len(ops) > MAX_TRANSACT_ITEMS:
            raise ValueError(f"Transaction of {len(ops)} items exceeds {MAX_TRANSACT_ITEMS}")
        items = [{"Update": dict(TableName=op.table, **build_update_params(op))} for op in ops]
        # the resource's client serializes plain Python values like Table does
        client = self.resource.meta.client
        try:
            return client.transact_write_items(TransactItems=items)
        except ClientError as e:
            if _error_code(e) == "TransactionCanceledException":
                reasons = [r.get("Code", "None") for r in e.response.get("CancellationReasons", [])]
                raise TransactionCancelledError(reasons) from e
            raise

