import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

DEFAULT_TABLE_NAME: str = "simplechat_connections"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    table_name: str = Field(default=DEFAULT_TABLE_NAME, min_length=1)
    websocket_endpoint: Optional[str] = None
    broadcast_include_sender: bool = False

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        env: Mapping[str, str] = os.environ if environ is None else environ
        return cls(
            table_name=env.get("TABLE_NAME") or DEFAULT_TABLE_NAME,
            websocket_endpoint=env.get("WEBSOCKET_ENDPOINT") or None,
            broadcast_include_sender=(
                env.get("BROADCAST_INCLUDE_SENDER", "").strip().lower()
                in _TRUTHY
            ),
        )
