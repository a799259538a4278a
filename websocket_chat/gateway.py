from functools import lru_cache
from typing import Any, Union

import boto3
from aws_lambda_powertools import Logger
from botocore.client import BaseClient
from botocore.exceptions import ClientError

from websocket_chat.exceptions import StaleConnectionError

logger: Logger = Logger(child=True)

GONE_ERROR_CODE: str = "GoneException"


class ConnectionGateway:
    """Pushes data to live sockets through the API Gateway management API."""

    def __init__(self, client: BaseClient):
        self.client: Any = client

    def post_to_connection(
        self, connection_id: str, data: Union[str, bytes]
    ) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            self.client.post_to_connection(
                ConnectionId=connection_id, Data=data
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == GONE_ERROR_CODE:
                raise StaleConnectionError(connection_id) from e
            raise


@lru_cache(maxsize=8)
def management_client(endpoint_url: str) -> BaseClient:
    logger.info(f"Creating management API client for {endpoint_url}")
    return boto3.client("apigatewaymanagementapi", endpoint_url=endpoint_url)


def gateway_for(endpoint_url: str) -> ConnectionGateway:
    return ConnectionGateway(management_client(endpoint_url))
