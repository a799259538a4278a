from datetime import datetime, timezone
from typing import Any, Dict, List

from aws_lambda_powertools import Logger

from websocket_chat.models import ConnectionRecord

logger: Logger = Logger(child=True)

PARTITION_KEY: str = "connectionId"


class ConnectionRepository:
    """Connection Store backed by a single DynamoDB table.

    The table is keyed on ``connectionId`` only. DynamoDB gives per-key
    atomicity, which is all concurrent connect/disconnect invocations need.
    """

    def __init__(self, table_name: str, dynamodb_resource: Any):
        self.table: Any = dynamodb_resource.Table(table_name)
        logger.info(f"ConnectionRepository initialized for table: {table_name}")

    def put(self, connection_id: str) -> ConnectionRecord:
        timestamp: str = (
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        record: ConnectionRecord = ConnectionRecord(
            connectionId=connection_id, connected_at=timestamp
        )
        self.table.put_item(Item=record.model_dump())
        return record

    def delete(self, connection_id: str) -> None:
        self.table.delete_item(Key={PARTITION_KEY: connection_id})

    def scan_all(self) -> List[str]:
        scan_kwargs: Dict[str, Any] = {
            "ProjectionExpression": "#pk",
            "ExpressionAttributeNames": {"#pk": PARTITION_KEY},
        }
        connection_ids: List[str] = []
        while True:
            response: Dict[str, Any] = self.table.scan(**scan_kwargs)
            for item in response.get("Items", []):
                connection_id = item.get(PARTITION_KEY)
                if connection_id:
                    connection_ids.append(connection_id)

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            scan_kwargs["ExclusiveStartKey"] = last_key

        return connection_ids
