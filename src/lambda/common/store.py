"""
Thin helpers over boto3 DynamoDB Table resources.
Every helper takes the table it works on; no table is global.
"""

import logging
import uuid
from datetime import datetime, timezone
from functools import reduce

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

logger = logging.getLogger()

BATCH_GET_LIMIT = 100
UNPROCESSED_RESENDS = 1


def connect(settings):
    """Return a DynamoDB service resource for the configured region."""
    return boto3.resource("dynamodb", region_name=settings.region)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def is_condition_failure(exc: ClientError) -> bool:
    """True when a conditional write or a transaction failed on its condition."""
    err = exc.response.get("Error", {})
    code = err.get("Code", "")
    if code == "ConditionalCheckFailedException":
        return True
    if code == "TransactionCanceledException":
        reasons = exc.response.get("CancellationReasons") or []
        if reasons:
            return any(r.get("Code") == "ConditionalCheckFailed" for r in reasons)
        return "ConditionalCheckFailed" in err.get("Message", "")
    return False


def get_item(table, key: dict) -> dict | None:
    resp = table.get_item(Key=key)
    return resp.get("Item")


def create_item(table, item: dict, key_name: str):
    """Put a new item, refusing to overwrite an existing one with the same key."""
    table.put_item(
        Item=item,
        ConditionExpression="attribute_not_exists(#pk)",
        ExpressionAttributeNames={"#pk": key_name},
    )
    return item


def put_item(table, item: dict):
    table.put_item(Item=item)
    return item


def update_fields(table, key: dict, fields: dict) -> dict | None:
    """
    SET only the given fields on an existing item and return the new record.
    Returns None when no item exists under key.
    """
    names, values, sets = {}, {}, []
    for i, (name, value) in enumerate(fields.items()):
        names[f"#f{i}"] = name
        values[f":v{i}"] = value
        sets.append(f"#f{i} = :v{i}")
    names["#pk"] = next(iter(key))
    try:
        resp = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(sets),
            ConditionExpression="attribute_exists(#pk)",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as exc:
        if is_condition_failure(exc):
            return None
        raise
    return resp.get("Attributes")


def delete_existing(table, key: dict) -> bool:
    """Delete an item. Returns False if there was nothing to delete."""
    try:
        table.delete_item(
            Key=key,
            ConditionExpression="attribute_exists(#pk)",
            ExpressionAttributeNames={"#pk": next(iter(key))},
        )
    except ClientError as exc:
        if is_condition_failure(exc):
            return False
        raise
    return True


def pop_item(table, key: dict) -> dict | None:
    """Delete an item and return what was stored, in one call."""
    resp = table.delete_item(Key=key, ReturnValues="ALL_OLD")
    return resp.get("Attributes")


def scan_all(table, filters: dict | None = None, **params) -> list[dict]:
    """Scan the whole table, paginating, with optional server-side equality filters."""
    if filters:
        conditions = [Attr(name).eq(value) for name, value in filters.items()]
        params["FilterExpression"] = reduce(lambda a, b: a & b, conditions)
    items: list[dict] = []
    while True:
        resp = table.scan(**params)
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
        params["ExclusiveStartKey"] = last_key
    return items


def query_index(table, index_name: str, key_name: str, value, filters: dict | None = None) -> list[dict]:
    """Query a GSI by its partition key, paginating through all results."""
    params = {
        "IndexName": index_name,
        "KeyConditionExpression": Key(key_name).eq(value),
    }
    if filters:
        conditions = [Attr(name).eq(v) for name, v in filters.items()]
        params["FilterExpression"] = reduce(lambda a, b: a & b, conditions)
    items: list[dict] = []
    while True:
        resp = table.query(**params)
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
        params["ExclusiveStartKey"] = last_key
    return items


def batch_get(table, key_name: str, ids) -> list[dict]:
    """
    Fetch many items by primary key. Missing ids are silently absent.
    Unprocessed keys are re-sent once; anything still unprocessed after that
    is logged and left out of the result.
    """
    unique = list(dict.fromkeys(i for i in ids if i))
    client = table.meta.client
    items: list[dict] = []
    for start in range(0, len(unique), BATCH_GET_LIMIT):
        request = {table.name: {"Keys": [{key_name: i} for i in unique[start:start + BATCH_GET_LIMIT]]}}
        for _ in range(1 + UNPROCESSED_RESENDS):
            resp = client.batch_get_item(RequestItems=request)
            items.extend(resp.get("Responses", {}).get(table.name, []))
            request = resp.get("UnprocessedKeys") or None
            if not request:
                break
        if request:
            skipped = len(request.get(table.name, {}).get("Keys", []))
            logger.warning("batch_get: %d keys from %s left unprocessed", skipped, table.name)
    return items


def transact_write(table, operations: list[dict]):
    """
    Run several writes as one DynamoDB transaction.
    operations use the resource-level shapes, e.g. {"Put": {"TableName": ..., "Item": {...}}}.
    """
    table.meta.client.transact_write_items(TransactItems=operations)
