"""Shared response schemas."""
from confdrop.schemas.base import EnvelopeModel


class MessageResponse(EnvelopeModel):
    message: str = ""
