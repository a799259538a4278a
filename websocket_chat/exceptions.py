class ChatError(Exception):
    pass


class StaleConnectionError(ChatError):
    def __init__(self, connection_id: str):
        super().__init__(f"Connection is gone: {connection_id}")
        self.connection_id = connection_id


class InvalidMessageError(ChatError, ValueError):
    pass
