import html
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from bleach import clean
from typing import Any

class CamelModel(BaseModel):
    """Base schema: snake_case attributes in Python, camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

def sanitize_text(v: Any) -> Any:
    """Strip HTML tags from free text fields. Non-string values are left to the type validator."""
    if isinstance(v, str):
        # bleach escapes &, < and >; keep the characters the user typed
        return html.unescape(clean(v, tags=[], strip=True)).strip()
    return v

class PaginationResponse(CamelModel):
    """Pagination data returned alongside every list"""
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool = False
