# cart_service/services/pagination.py
import math
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def paginate(items: Sequence[T], page_size: int, page: int) -> Tuple[List[T], int]:
    """
    Return the 1-indexed ``page`` of ``items`` and the total page count.

    An empty sequence has 0 pages. Pages below 1 or past the end give an
    empty slice, never an error.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    total_pages = math.ceil(len(items) / page_size)
    if page < 1:
        return [], total_pages

    start = (page - 1) * page_size
    if start >= len(items):
        return [], total_pages

    end = min(start + page_size, len(items))
    return list(items[start:end]), total_pages
