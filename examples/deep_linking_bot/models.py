from datetime import datetime

from pydantic import BaseModel


class RelayedMessage(BaseModel):
    id: int
    sender_id: int
    recipient_id: int
    text: str
    created_at: datetime
