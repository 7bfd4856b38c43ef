"""Page/limit/offset arithmetic for the order list."""

import math

from .models import PaginationMeta


def offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def last_page(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def build_meta(total: int, page: int, limit: int) -> PaginationMeta:
    return PaginationMeta(total=total, current_page=page, last_page=last_page(total, limit))
