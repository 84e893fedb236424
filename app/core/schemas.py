"""
Shared DTO base classes.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base DTO serialized with camelCase keys.
    Accepts both camelCase and snake_case on input.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
