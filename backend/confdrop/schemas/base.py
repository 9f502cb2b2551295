"""Base schema classes with camelCase alias generation.

All API schemas inherit from CamelModel instead of BaseModel directly.
Python code stays snake_case. JSON on the wire and on disk is camelCase.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input, outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class EnvelopeModel(CamelModel):
    """Every API response carries a success flag."""
    success: bool = True
