"""
Pydantic request/response schemas.

Every body accepts both the camelCase names the web client sends
(``delegationName``) and the snake_case column names (``delegation_name``).
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case field names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def changes(self, *exclude: str) -> dict:
        """Fields the client actually sent, minus ``exclude``."""
        return self.model_dump(exclude_unset=True, exclude=set(exclude))
