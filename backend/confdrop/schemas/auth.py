"""Admin login schemas."""
from typing import Optional

from confdrop.schemas.base import CamelModel, EnvelopeModel


class LoginRequest(CamelModel):
    # Clients may send the numeric code as a JSON number
    model_config = {**CamelModel.model_config, "coerce_numbers_to_str": True}

    code: Optional[str] = None


class LoginResponse(EnvelopeModel):
    message: str = ""
    token: str
