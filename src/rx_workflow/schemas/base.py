"""Shared Pydantic base for payloads exchanged with the record API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """
    Immutable model whose fields travel in camelCase on the wire.

    Python code uses snake_case attribute names; `model_dump(by_alias=True)`
    produces the API's field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )
