"""HTTP request bodies."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import RpsAction


class CreateRoomRequest(BaseModel):
    """Create a room. ``identity`` is generated when not supplied."""
    name: str = Field(..., min_length=1, max_length=20, description="Creator display name")
    identity: Optional[str] = Field(default=None, max_length=128, pattern=r"^[A-Za-z0-9_\-=]+$")


class JoinRoomRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=20)


class SendMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class SubmitActionRequest(BaseModel):
    action: RpsAction
