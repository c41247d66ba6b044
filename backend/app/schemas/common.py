"""
Shared response pieces for paginated list endpoints.
"""

import math
from pydantic import BaseModel


class PageMeta(BaseModel):
    """Pagination fields carried by every list response."""
    total: int
    page: int
    page_size: int
    pages: int


def page_meta(total: int, page: int, page_size: int) -> dict:
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": math.ceil(total / page_size) if page_size else 0
    }


class MessageResponse(BaseModel):
    message: str
