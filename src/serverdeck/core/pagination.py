"""Pagination helpers."""

from __future__ import annotations

import math

ELLIPSIS = -1


def page_count(total_items: int, page_size: int) -> int:
    return math.ceil(total_items / page_size) if page_size > 0 else 0


def pagination_range(current_page: int, total_pages: int, max_displayed: int = 7) -> list[int]:
    """
    Page numbers to show in a pager.

    The first and last page are always present; ELLIPSIS (-1) marks gaps.
    """
    if total_pages <= max_displayed:
        return list(range(1, total_pages + 1))

    start = max(1, current_page - max_displayed // 2)
    end = start + max_displayed - 1
    if end > total_pages:
        end = total_pages
        start = max(1, end - max_displayed + 1)

    pages = [1]
    if start > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(max(2, start), min(total_pages - 1, end) + 1))
    if end < total_pages - 1:
        pages.append(ELLIPSIS)
    if total_pages > 1:
        pages.append(total_pages)
    return pages
