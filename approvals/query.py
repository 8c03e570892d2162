"""
Filter state and request parameter building for the approvals dashboards.
"""
from dataclasses import dataclass, replace

from django.conf import settings

from .entities import EntityType


STATUS_CHOICES = ('all', 'pending', 'verified', 'unverified', 'rejected')
TAB_CHOICES = ('all', 'vendors', 'restaurants')

DEFAULT_STATUS = 'pending'
DEFAULT_TAB = 'all'

TAB_SOURCES = {
    'all': (EntityType.VENDOR, EntityType.RESTAURANT),
    'vendors': (EntityType.VENDOR,),
    'restaurants': (EntityType.RESTAURANT,),
}


def _default_page_size():
    return getattr(settings, 'APPROVALS_PAGE_SIZE', 12)


def _parse_page(value):
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page > 0 else 1


@dataclass(frozen=True)
class FilterState:
    """What the admin is currently looking at on a dashboard."""
    search: str = ''
    status: str = DEFAULT_STATUS
    tab: str = DEFAULT_TAB
    page: int = 1
    page_size: int = 12

    @classmethod
    def from_query(cls, params, page_size=None, default_status=DEFAULT_STATUS):
        """
        Build a filter state from request query parameters.
        Unknown status/tab values fall back to the defaults.
        """
        status = params.get('status', default_status)
        tab = params.get('tab', DEFAULT_TAB)
        return cls(
            search=params.get('search', '') or '',
            status=status if status in STATUS_CHOICES else default_status,
            tab=tab if tab in TAB_CHOICES else DEFAULT_TAB,
            page=_parse_page(params.get('page')),
            page_size=page_size or _default_page_size(),
        )

    @property
    def key(self):
        """Identity of the data this state asks the backend for."""
        return (self.search.strip(), self.status, self.tab, self.page, self.page_size)

    def with_changes(self, **changes):
        """
        Return a new state. Changing anything but the page sends the
        admin back to page 1.
        """
        updated = replace(self, **changes)
        if replace(updated, page=self.page) != self:
            updated = replace(updated, page=1)
        return updated

    def cleared(self):
        """Clear Filters - back to defaults, keeping the view's page size."""
        return FilterState(page_size=self.page_size)


def sources_for_tab(tab):
    return TAB_SOURCES.get(tab, TAB_SOURCES[DEFAULT_TAB])


def uses_pending_endpoint(filter_state):
    """Pending entities are served by dedicated endpoints, not a parameter."""
    return filter_state.status == 'pending'


def build_query_params(filter_state, page=None, limit=None, sort_by=None, sort_order=None):
    """
    Turn a filter state into backend query parameters.

    Only meaningful values are included: an empty search is left out
    rather than sent as "", and ``isVerified`` only appears for the
    verified/unverified filters. ``page``/``limit`` default to the
    filter's own pagination.
    """
    params = {
        'page': page or filter_state.page,
        'limit': limit or filter_state.page_size,
    }

    if filter_state.search and filter_state.search.strip():
        params['search'] = filter_state.search

    if filter_state.status == 'verified':
        params['isVerified'] = True
    elif filter_state.status == 'unverified':
        params['isVerified'] = False
    elif filter_state.status == 'rejected':
        params['status'] = 'rejected'

    if sort_by:
        params['sortBy'] = sort_by
    if sort_order:
        params['sortOrder'] = sort_order

    return params
