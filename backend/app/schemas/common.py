from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request/response bodies; the wire format is camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
