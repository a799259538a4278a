"""
Pytest configuration and fixtures for the WebSocket chat tests.

DynamoDB and the API Gateway management API are replaced by in-memory
doubles, so no AWS credentials or network access are needed.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
from botocore.exceptions import ClientError

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("TABLE_NAME", "simplechat_connections")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "websocket-chat")

from websocket_chat.gateway import ConnectionGateway  # noqa: E402
from websocket_chat.repository import ConnectionRepository  # noqa: E402
from websocket_chat.service import ChatService  # noqa: E402


class FakeTable:
    """Dict-backed stand-in for a boto3 DynamoDB Table."""

    def __init__(self, page_size: int = 2):
        self.items: Dict[str, Dict[str, Any]] = {}
        self.page_size = page_size
        self.scan_calls: List[Dict[str, Any]] = []

    def put_item(self, Item: Dict[str, Any]) -> Dict[str, Any]:
        self.items[Item["connectionId"]] = dict(Item)
        return {}

    def delete_item(self, Key: Dict[str, Any]) -> Dict[str, Any]:
        self.items.pop(Key["connectionId"], None)
        return {}

    def scan(self, **kwargs: Any) -> Dict[str, Any]:
        self.scan_calls.append(kwargs)
        keys = sorted(self.items)
        start = kwargs.get("ExclusiveStartKey")
        if start:
            keys = [k for k in keys if k > start["connectionId"]]
        page = keys[: self.page_size]
        response: Dict[str, Any] = {
            "Items": [{"connectionId": k} for k in page]
        }
        if len(keys) > self.page_size:
            response["LastEvaluatedKey"] = {"connectionId": page[-1]}
        return response


class FakeDynamoDBResource:
    def __init__(self, table: FakeTable):
        self.table = table
        self.requested: List[str] = []

    def Table(self, name: str) -> FakeTable:
        self.requested.append(name)
        return self.table


class FakeManagementClient:
    """Records PostToConnection calls; gone/broken ids raise ClientError."""

    def __init__(
        self,
        gone: Optional[Set[str]] = None,
        broken: Optional[Set[str]] = None,
    ):
        self.gone: Set[str] = gone or set()
        self.broken: Set[str] = broken or set()
        self.posts: List[Tuple[str, bytes]] = []

    def post_to_connection(self, ConnectionId: str, Data: bytes) -> None:
        self.posts.append((ConnectionId, Data))
        if ConnectionId in self.gone:
            raise ClientError(
                {"Error": {"Code": "GoneException", "Message": "Gone"}},
                "PostToConnection",
            )
        if ConnectionId in self.broken:
            raise ClientError(
                {
                    "Error": {
                        "Code": "LimitExceededException",
                        "Message": "Slow down",
                    }
                },
                "PostToConnection",
            )

    @property
    def targets(self) -> List[str]:
        return [connection_id for connection_id, _ in self.posts]


@dataclass
class FakeLambdaContext:
    function_name: str = "websocket-chat"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = (
        "arn:aws:lambda:us-east-1:123456789012:function:websocket-chat"
    )
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


@pytest.fixture
def table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def repository(table: FakeTable) -> ConnectionRepository:
    return ConnectionRepository(
        "simplechat_connections", FakeDynamoDBResource(table)
    )


@pytest.fixture
def service(repository: ConnectionRepository) -> ChatService:
    return ChatService(repository)


@pytest.fixture
def management_client() -> FakeManagementClient:
    return FakeManagementClient()


@pytest.fixture
def gateway(management_client: FakeManagementClient) -> ConnectionGateway:
    return ConnectionGateway(management_client)


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    return FakeLambdaContext()


def websocket_event(
    connection_id: str,
    event_type: str = "MESSAGE",
    route_key: Optional[str] = None,
    body: Optional[str] = None,
    is_base64_encoded: bool = False,
    domain_name: str = "abc123.execute-api.us-east-1.amazonaws.com",
) -> Dict[str, Any]:
    """Build an API Gateway WebSocket proxy event as the gateway sends it."""
    if route_key is None:
        route_key = {
            "CONNECT": "$connect",
            "DISCONNECT": "$disconnect",
        }.get(event_type, "sendmessage")
    request_context: Dict[str, Any] = {
        "routeKey": route_key,
        "eventType": event_type,
        "extendedRequestId": f"ext-{connection_id}",
        "requestTime": "17/Oct/2026:19:30:00 +0000",
        "messageDirection": "IN",
        "stage": "dev",
        "connectedAt": 1792265400000,
        "requestTimeEpoch": 1792265400000,
        "identity": {"sourceIp": "203.0.113.10"},
        "requestId": f"req-{connection_id}",
        "domainName": domain_name,
        "connectionId": connection_id,
        "apiId": "abc123",
    }
    event: Dict[str, Any] = {
        "requestContext": request_context,
        "isBase64Encoded": is_base64_encoded,
    }
    if event_type == "MESSAGE":
        request_context["messageId"] = f"msg-{connection_id}"
    else:
        event["headers"] = {"Host": domain_name}
        event["multiValueHeaders"] = {"Host": [domain_name]}
    if event_type == "DISCONNECT":
        request_context["disconnectStatusCode"] = 1001
        request_context["disconnectReason"] = "Going away"
    if body is not None:
        event["body"] = body
    return event
