from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

def clamp_page(limit: int | None, offset: int | None, default_limit: int = 50) -> tuple[int, int]:
    limit = default_limit if limit is None else limit
    return min(max(limit, 1), 100), max(offset or 0, 0)
