import base64
import binascii
import json
from typing import Any, Dict, List, Optional, Type, Union

from aws_lambda_powertools.utilities.parser import parse
from aws_lambda_powertools.utilities.parser.models import (
    APIGatewayWebSocketConnectEventModel,
    APIGatewayWebSocketDisconnectEventModel,
    APIGatewayWebSocketMessageEventModel,
)
from pydantic import BaseModel, Field

from websocket_chat.exceptions import InvalidMessageError

WebSocketEvent = Union[
    APIGatewayWebSocketConnectEventModel,
    APIGatewayWebSocketDisconnectEventModel,
    APIGatewayWebSocketMessageEventModel,
]

EVENT_MODELS: Dict[str, Type[BaseModel]] = {
    "CONNECT": APIGatewayWebSocketConnectEventModel,
    "DISCONNECT": APIGatewayWebSocketDisconnectEventModel,
    "MESSAGE": APIGatewayWebSocketMessageEventModel,
}


class ConnectionRecord(BaseModel):
    connectionId: str = Field(min_length=1)
    connected_at: str


class SendMessageRequest(BaseModel):
    action: str
    data: Any

    def payload(self) -> str:
        if isinstance(self.data, str):
            return self.data
        return json.dumps(self.data)


class BroadcastResult(BaseModel):
    delivered: List[str] = Field(default_factory=list)
    stale: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def parse_event(event: Dict[str, Any]) -> WebSocketEvent:
    """Validate a raw API Gateway WebSocket event against its powertools model.

    The model is picked from ``requestContext.eventType``. Raises
    ``InvalidMessageError`` for an unknown event type and pydantic's
    ``ValidationError`` when the event does not match the model.
    """
    request_context: Any = event.get("requestContext")
    event_type: Any = (
        request_context.get("eventType")
        if isinstance(request_context, dict)
        else None
    )
    model: Optional[Type[BaseModel]] = (
        EVENT_MODELS.get(event_type) if isinstance(event_type, str) else None
    )
    if model is None:
        raise InvalidMessageError(
            f"Unsupported WebSocket event type: {event_type}"
        )
    return parse(event=event, model=model)


def endpoint_url(event: WebSocketEvent) -> Optional[str]:
    ctx = event.request_context
    if not ctx.domain_name or not ctx.stage:
        return None
    return f"https://{ctx.domain_name}/{ctx.stage}"


def json_body(event: APIGatewayWebSocketMessageEventModel) -> Dict[str, Any]:
    body: Any = event.body
    if not body:
        raise InvalidMessageError("Message body is empty")
    if not isinstance(body, str):
        raise InvalidMessageError("Message body must be text")

    if event.is_base64_encoded:
        try:
            body = base64.b64decode(body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise InvalidMessageError(f"Message body is not valid base64: {e}")

    try:
        parsed: Any = json.loads(body)
    except ValueError as e:
        raise InvalidMessageError(f"Message body is not JSON: {e}")
    if not isinstance(parsed, dict):
        raise InvalidMessageError("Message body must be a JSON object")
    return parsed


def body_action(event: WebSocketEvent) -> Optional[str]:
    if not isinstance(event, APIGatewayWebSocketMessageEventModel):
        return None
    try:
        action: Any = json_body(event).get("action")
    except InvalidMessageError:
        return None
    return action if isinstance(action, str) else None
