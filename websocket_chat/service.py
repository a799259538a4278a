from typing import List

from aws_lambda_powertools import Logger

from websocket_chat.exceptions import StaleConnectionError
from websocket_chat.gateway import ConnectionGateway
from websocket_chat.models import BroadcastResult, ConnectionRecord
from websocket_chat.repository import ConnectionRepository

logger: Logger = Logger(child=True)


class ChatService:
    def __init__(
        self,
        connection_repository: ConnectionRepository,
        include_sender: bool = False,
    ):
        self.connection_repository: ConnectionRepository = (
            connection_repository
        )
        self.include_sender: bool = include_sender

    def connect(self, connection_id: str) -> ConnectionRecord:
        record: ConnectionRecord = self.connection_repository.put(
            connection_id
        )
        logger.info(f"Registered connection: {connection_id}")
        return record

    def disconnect(self, connection_id: str) -> None:
        self.connection_repository.delete(connection_id)
        logger.info(f"Removed connection: {connection_id}")

    def broadcast(
        self, sender_id: str, payload: str, gateway: ConnectionGateway
    ) -> BroadcastResult:
        """Push ``payload`` once to every tracked connection.

        Connections that turn out to be gone are dropped from the store.
        Any other push failure is recorded in ``failed`` and the broadcast
        carries on with the remaining recipients.
        """
        connection_ids: List[str] = self.connection_repository.scan_all()
        logger.info(
            f"Broadcasting from {sender_id} to {len(connection_ids)} tracked connections"
        )

        result: BroadcastResult = BroadcastResult()
        for connection_id in connection_ids:
            if connection_id == sender_id and not self.include_sender:
                continue
            try:
                gateway.post_to_connection(connection_id, payload)
            except StaleConnectionError:
                logger.info(f"Dropping stale connection: {connection_id}")
                self.connection_repository.delete(connection_id)
                result.stale.append(connection_id)
            except Exception:
                logger.warning(
                    f"Failed to push to connection: {connection_id}",
                    exc_info=True,
                )
                result.failed.append(connection_id)
            else:
                result.delivered.append(connection_id)

        return result
