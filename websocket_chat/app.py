from typing import Any, Dict, Optional

import boto3
from aws_lambda_powertools import Logger
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from websocket_chat.config import Settings
from websocket_chat.exceptions import ChatError, InvalidMessageError
from websocket_chat.gateway import ConnectionGateway, gateway_for
from websocket_chat.models import (
    BroadcastResult,
    SendMessageRequest,
    WebSocketEvent,
    body_action,
    endpoint_url,
    json_body,
)
from websocket_chat.repository import ConnectionRepository
from websocket_chat.router import WebSocketResolver, response
from websocket_chat.service import ChatService

SEND_MESSAGE_ROUTE: str = "sendmessage"

logger: Logger = Logger()
app: WebSocketResolver = WebSocketResolver()


def build_chat_service(
    settings: Settings, dynamodb_resource: Any
) -> ChatService:
    connection_repository: ConnectionRepository = ConnectionRepository(
        settings.table_name, dynamodb_resource
    )
    return ChatService(
        connection_repository,
        include_sender=settings.broadcast_include_sender,
    )


settings: Settings = Settings.from_env()
dynamodb_resource = boto3.resource("dynamodb")
chat_service: ChatService = build_chat_service(settings, dynamodb_resource)


def resolve_gateway(event: WebSocketEvent) -> ConnectionGateway:
    url: Optional[str] = settings.websocket_endpoint or endpoint_url(event)
    if not url:
        raise ChatError(
            "Event carries no domainName/stage and WEBSOCKET_ENDPOINT is unset"
        )
    return gateway_for(url)


def _current_event() -> WebSocketEvent:
    if app.current_event is None:
        raise RuntimeError("No WebSocket event is being resolved")
    return app.current_event


@app.connect()
def on_connect() -> Dict[str, Any]:
    try:
        chat_service.connect(_current_event().request_context.connection_id)
        return response(200, {"status": "connected"})
    except Exception:
        logger.exception("Error registering connection")
        return response(500, {"error": "Failed to connect"})


@app.disconnect()
def on_disconnect() -> Dict[str, Any]:
    try:
        chat_service.disconnect(
            _current_event().request_context.connection_id
        )
        return response(200, {"status": "disconnected"})
    except Exception:
        logger.exception("Error removing connection")
        return response(500, {"error": "Failed to disconnect"})


@app.route(SEND_MESSAGE_ROUTE)
def on_send_message() -> Dict[str, Any]:
    event: WebSocketEvent = _current_event()
    connection_id: str = event.request_context.connection_id
    try:
        body: SendMessageRequest = SendMessageRequest.model_validate(
            json_body(event)
        )
    except (InvalidMessageError, ValidationError) as e:
        logger.warning(f"Rejecting message from {connection_id}: {e}")
        return response(400, {"error": str(e)})

    try:
        gateway: ConnectionGateway = resolve_gateway(event)
        result: BroadcastResult = chat_service.broadcast(
            connection_id, body.payload(), gateway
        )
    except Exception:
        logger.exception("Error broadcasting message")
        return response(500, {"error": "Internal Server Error"})

    if not result.ok:
        logger.warning(
            f"Broadcast finished with {len(result.failed)} failed recipients",
            extra={"failed": result.failed},
        )
        return response(
            500, {"error": "Delivery failed", "failed": result.failed}
        )

    return response(
        200,
        {
            "status": "sent",
            "delivered": len(result.delivered),
            "stale": len(result.stale),
        },
    )


@app.default()
def on_default() -> Dict[str, Any]:
    event: WebSocketEvent = _current_event()
    action: Optional[str] = body_action(event)
    logger.warning(
        f"Unsupported action from {event.request_context.connection_id}: "
        f"{action}"
    )
    return response(400, {"error": f"Unsupported action: {action}"})


@logger.inject_lambda_context(
    correlation_id_path=correlation_paths.API_GATEWAY_REST
)
def lambda_handler(
    event: Dict[str, Any], context: LambdaContext
) -> Dict[str, Any]:
    logger.append_keys(
        connection_id=event.get("requestContext", {}).get("connectionId")
    )
    return app.resolve(event)


# Entrypoints for deploying $connect, $disconnect and sendmessage as
# separate functions. They share the router above.
connect_handler = lambda_handler
disconnect_handler = lambda_handler
sendmessage_handler = lambda_handler
