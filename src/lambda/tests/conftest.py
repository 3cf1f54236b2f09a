"""
Shared fixtures for the BNDY Lambda tests.
DynamoDB tables are MagicMocks; handlers are built with make_handler so no
test touches AWS.
"""

import json
import os
import sys
from unittest.mock import MagicMock

import pytest

# Make sure src/lambda is on the path, the same layout the Lambda zip uses
lambda_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if lambda_root not in sys.path:
    sys.path.insert(0, lambda_root)

# Handler modules build a boto3 resource at import time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")

from botocore.exceptions import ClientError  # noqa: E402

from common.config import Settings  # noqa: E402
from common.session import issue_session  # noqa: E402

SECRET = "test-secret-which-is-long-enough-for-hs256"
USER_ID = "cognito-user-123456"


def _client_error(code="ConditionalCheckFailedException", operation="UpdateItem", reasons=None):
    response = {"Error": {"Code": code, "Message": code}}
    if reasons is not None:
        response["CancellationReasons"] = [{"Code": r} for r in reasons]
    return ClientError(response, operation)


def _mock_table(name):
    table = MagicMock()
    table.name = name
    table.get_item.return_value = {}
    table.scan.return_value = {"Items": []}
    table.query.return_value = {"Items": []}
    table.delete_item.return_value = {}
    table.meta.client.batch_get_item.return_value = {"Responses": {}}
    return table


@pytest.fixture
def settings():
    return Settings(jwt_secret=SECRET, cognito_client_id="client-abc", cognito_client_secret="shh")


@pytest.fixture
def tables(settings):
    names = [
        settings.users_table,
        settings.artists_table,
        settings.memberships_table,
        settings.venues_table,
        settings.songs_table,
        settings.issues_table,
        settings.oauth_states_table,
    ]
    return {name: _mock_table(name) for name in names}


@pytest.fixture
def dynamodb(tables):
    resource = MagicMock()
    resource.Table.side_effect = lambda name: tables[name]
    return resource


@pytest.fixture
def session_token():
    return issue_session(USER_ID, "tester", "test@bndy.co.uk", SECRET, 3600)


@pytest.fixture
def make_event(session_token):
    """Build a minimal API Gateway HTTP API (v2) event."""

    def _make_event(method="GET", path="/", body=None, auth=False, query=None, headers=None):
        event = {
            "version": "2.0",
            "requestContext": {"http": {"method": method, "path": path}},
            "rawPath": path,
            "headers": dict(headers or {}),
            "queryStringParameters": query or {},
        }
        if body is not None:
            event["body"] = json.dumps(body)
            event["headers"].setdefault("content-type", "application/json")
        if auth:
            event["cookies"] = [f"bndy_session={session_token}"]
        return event

    return _make_event


def parse_response(response):
    """Return (status, parsed JSON body or None)."""
    assert "statusCode" in response
    assert "body" in response
    body = json.loads(response["body"]) if response["body"] else None
    return response["statusCode"], body


@pytest.fixture
def parse():
    return parse_response


@pytest.fixture
def client_error():
    return _client_error


@pytest.fixture
def user_id():
    return USER_ID
