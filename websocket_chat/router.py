import json
from typing import Any, Callable, Dict, Optional

from aws_lambda_powertools import Logger
from pydantic import ValidationError

from websocket_chat.exceptions import InvalidMessageError
from websocket_chat.models import WebSocketEvent, body_action, parse_event

logger: Logger = Logger(child=True)

CONNECT_ROUTE: str = "$connect"
DISCONNECT_ROUTE: str = "$disconnect"
DEFAULT_ROUTE: str = "$default"

_LIFECYCLE_ROUTES: Dict[str, str] = {
    "CONNECT": CONNECT_ROUTE,
    "DISCONNECT": DISCONNECT_ROUTE,
}

RouteFunction = Callable[[], Dict[str, Any]]


def response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body)}


def _is_reserved(route_key: str) -> bool:
    return route_key.startswith("$")


class WebSocketResolver:
    """Dispatches API Gateway WebSocket events to registered route functions.

    Lifecycle routes are chosen from ``eventType`` alone. Client messages go
    to the gateway's ``routeKey`` when a route is registered for it; only
    messages the gateway sent to ``$default`` are routed on the ``action``
    field of their JSON body. Reserved ``$`` routes are never reachable
    from a message.
    """

    def __init__(self) -> None:
        self._routes: Dict[str, RouteFunction] = {}
        self.current_event: Optional[WebSocketEvent] = None

    def route(
        self, route_key: str
    ) -> Callable[[RouteFunction], RouteFunction]:
        def register(func: RouteFunction) -> RouteFunction:
            self._routes[route_key] = func
            return func

        return register

    def connect(self) -> Callable[[RouteFunction], RouteFunction]:
        return self.route(CONNECT_ROUTE)

    def disconnect(self) -> Callable[[RouteFunction], RouteFunction]:
        return self.route(DISCONNECT_ROUTE)

    def default(self) -> Callable[[RouteFunction], RouteFunction]:
        return self.route(DEFAULT_ROUTE)

    def select_route(self, event: WebSocketEvent) -> str:
        ctx = event.request_context
        lifecycle_route = _LIFECYCLE_ROUTES.get(ctx.event_type)
        if lifecycle_route:
            return lifecycle_route

        route_key: str = ctx.route_key
        if not _is_reserved(route_key) and route_key in self._routes:
            return route_key

        if route_key == DEFAULT_ROUTE:
            action: Optional[str] = body_action(event)
            if action and not _is_reserved(action) and action in self._routes:
                return action
        return DEFAULT_ROUTE

    def resolve(self, event: Dict[str, Any]) -> Dict[str, Any]:
        try:
            current_event: WebSocketEvent = parse_event(event)
        except (InvalidMessageError, ValidationError) as e:
            logger.warning(f"Rejecting malformed WebSocket event: {e}")
            return response(400, {"error": "Malformed WebSocket event"})

        route_key: str = self.select_route(current_event)
        route_function: Optional[RouteFunction] = self._routes.get(route_key)
        if route_function is None:
            logger.warning(f"No route registered for {route_key}")
            return response(400, {"error": f"Unsupported route: {route_key}"})

        self.current_event = current_event
        try:
            return route_function()
        finally:
            self.current_event = None
