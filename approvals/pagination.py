"""
Paging over the merged, filtered entity list.

The merged list has its own page size, independent of how many records
each backend collection returned per page.
"""
from dataclasses import dataclass

from django.core.paginator import Paginator


@dataclass(frozen=True)
class Page:
    items: list
    number: int
    total_pages: int
    total_items: int

    @property
    def has_next(self):
        return self.number < self.total_pages

    @property
    def has_previous(self):
        return self.number > 1

    def as_dict(self):
        return {
            'page': self.number,
            'totalPages': self.total_pages,
            'totalItems': self.total_items,
            'hasNext': self.has_next,
            'hasPrevious': self.has_previous,
        }


def paginate(items, page, page_size):
    """
    Return one page of ``items``.

    ``total_pages`` is ceil(len / page_size), so an empty list has no
    pages at all. A stale or malformed page number is clamped to the
    nearest real page instead of raising.
    """
    if page_size <= 0:
        raise ValueError('page_size must be positive')

    items = list(items)
    if not items:
        return Page(items=[], number=1, total_pages=0, total_items=0)

    paginator = Paginator(items, page_size)
    current = paginator.get_page(page)

    return Page(
        items=list(current.object_list),
        number=current.number,
        total_pages=paginator.num_pages,
        total_items=paginator.count,
    )
