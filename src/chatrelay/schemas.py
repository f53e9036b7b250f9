# schemas.py
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class MessageCreate(BaseModel):
    username: str
    text: str
    channel_id: int


class MessageRead(BaseModel):
    """Wire shape of a stored message, keyed the way chat clients expect."""

    username: str = Field(serialization_alias="Username")
    message: str = Field(serialization_alias="Message")
    channel_id: int = Field(serialization_alias="ChannelId")

    model_config = ConfigDict(from_attributes=True)
