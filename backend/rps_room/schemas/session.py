"""Explicit per-request session context."""
from pydantic import BaseModel, Field, field_validator

from .game import Participant


class SessionContext(BaseModel):
    """Identity and display name of the participant an operation acts for."""

    identity: str = Field(..., min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_\-=]+$")
    name: str = Field(..., min_length=1, max_length=20)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        # Stored names never carry outer whitespace
        return value.strip() if isinstance(value, str) else value

    def as_participant(self) -> Participant:
        return Participant(identity=self.identity, name=self.name)
