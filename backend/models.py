from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Todo(BaseModel):
    id: int
    user_id: str
    task: str
    done: bool = False
    pin: bool = False
    due: datetime  # aware, in settings.TIMEZONE


class PinRequest(BaseModel):
    id: int
    pin: bool


class DoneRequest(BaseModel):
    id: int
    done: bool


class EditRequest(BaseModel):
    id: int
    task: str = Field(min_length=1)
    due: datetime  # naive values are local wall-clock time


class DeleteRequest(BaseModel):
    id: int


class UserInfo(BaseModel):
    name: str
    picture: str


# LINE webhook payload (only the fields the bot reads)
class EventSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "user"
    user_id: Optional[str] = Field(default=None, alias="userId")


class EventMessage(BaseModel):
    type: str
    text: Optional[str] = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    source: EventSource = Field(default_factory=EventSource)
    message: Optional[EventMessage] = None


class WebhookBody(BaseModel):
    events: list[WebhookEvent] = []
