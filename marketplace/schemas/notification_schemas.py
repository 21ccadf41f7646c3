from typing import Optional

from pydantic import BaseModel


class NotificationReadRequest(BaseModel):
    notification_id: Optional[str] = None
    mark_all: bool = False
