"""
Dashboard loading and single-entity actions.

Loading runs the whole pipeline: fetch the selected collections
concurrently, merge, filter, count, paginate, and prune the admin's
selection against what came back.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from django.conf import settings

from .entities import EntityType
from .exceptions import ApprovalsError, UnknownServerError, ValidationFailure
from .filters import filter_entities
from .merge import merge_results
from .pagination import paginate
from .query import build_query_params, sources_for_tab, uses_pending_endpoint
from .state import DashboardState, FAILED
from .stats import aggregate_stats

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ('name', 'owner_name', 'email', 'status', 'is_verified')
VERIFIABLE_TYPES = (EntityType.VENDOR, EntityType.RESTAURANT)


@dataclass
class DashboardResult:
    filter_state: object
    page: object
    stats: object
    entities: list = field(default_factory=list)
    errors: dict = field(default_factory=dict)
    pruned: set = field(default_factory=set)

    def as_dict(self, selection=None):
        data = {
            'filters': {
                'search': self.filter_state.search,
                'status': self.filter_state.status,
                'tab': self.filter_state.tab,
                'pageSize': self.filter_state.page_size,
            },
            'results': [entity.as_dict() for entity in self.page.items],
            'pagination': self.page.as_dict(),
            'stats': self.stats.as_dict(),
            'errors': self.errors,
        }
        if selection is not None:
            data['selection'] = selection.to_session()
        return data


def fetch_sources(client, state, ticket, entity_types, params, pending=False):
    """
    Fetch every collection in ``entity_types`` at the same time and hand
    each result to ``state`` as it arrives. A failing collection is
    recorded on its own; the others still load.
    """
    if not entity_types:
        return

    with ThreadPoolExecutor(max_workers=len(entity_types)) as executor:
        futures = {
            executor.submit(client.fetch_collection, entity_type, params, pending): entity_type
            for entity_type in entity_types
        }
        for future in as_completed(futures):
            entity_type = futures[future]
            try:
                state.resolve(ticket, entity_type, future.result())
            except ApprovalsError as e:
                logger.warning(f"Failed to load {entity_type.value} collection: {e.message}")
                state.fail(ticket, entity_type, e)


def _source_limit():
    return getattr(settings, 'APPROVALS_SOURCE_LIMIT', 100)


def build_dashboard(state, filter_state, entity_types, selection=None, sort_by=None, descending=False):
    """Merge, filter and paginate whatever ``state`` currently holds."""
    merged = merge_results(
        state.loaded_payloads(entity_types),
        sort_by=sort_by if sort_by in SORTABLE_FIELDS else None,
        descending=descending,
    )

    pruned = set()
    if selection is not None:
        failed = [t for t, result in state.sources.items() if result.status == FAILED]
        pruned = selection.prune(merged, keep_types=failed)

    by_type = {entity_type: None for entity_type in EntityType}
    for entity_type, payload in state.loaded_payloads(entity_types):
        if payload is not None:
            by_type[entity_type] = [e for e in merged if e.type == entity_type]

    stats = aggregate_stats(
        vendors=by_type[EntityType.VENDOR],
        restaurants=by_type[EntityType.RESTAURANT],
        listings=by_type[EntityType.LISTING],
    )

    filtered = filter_entities(merged, filter_state)
    page = paginate(filtered, filter_state.page, filter_state.page_size)

    return DashboardResult(
        filter_state=filter_state,
        page=page,
        stats=stats,
        entities=merged,
        errors=state.errors(),
        pruned=pruned,
    )


def load_verification_dashboard(client, filter_state, selection=None, state=None,
                                sort_by=None, sort_order=None):
    """
    Vendor and restaurant verification dashboard.

    Collections are requested from their first page with a generous
    limit; paging is applied to the merged list, not per collection.
    """
    state = state or DashboardState()
    entity_types = sources_for_tab(filter_state.tab)
    params = build_query_params(
        filter_state,
        page=1,
        limit=_source_limit(),
        sort_by=sort_by,
        sort_order=sort_order,
    )

    ticket = state.begin(filter_state, entity_types)
    fetch_sources(
        client, state, ticket, entity_types, params,
        pending=uses_pending_endpoint(filter_state),
    )

    return build_dashboard(
        state, filter_state, entity_types,
        selection=selection,
        sort_by=sort_by,
        descending=sort_order == 'desc',
    )


def load_moderation_queue(client, filter_state, selection=None, state=None):
    """Listing moderation queue."""
    state = state or DashboardState()
    entity_types = (EntityType.LISTING,)
    params = build_query_params(filter_state, page=1, limit=_source_limit())

    ticket = state.begin(filter_state, entity_types)
    fetch_sources(client, state, ticket, entity_types, params)

    return build_dashboard(state, filter_state, entity_types, selection=selection)


# ============ Single-entity actions ============

def _require_reason(reason, action):
    if not (reason or '').strip():
        raise ValidationFailure(f'A reason is required to {action}.', field='reason')
    return reason.strip()


def _require_verifiable(entity_type):
    entity_type = EntityType.parse(entity_type)
    if entity_type not in VERIFIABLE_TYPES:
        raise ValidationFailure('Only vendors and restaurants support this action.', field='type')
    return entity_type


def is_transient(error):
    """Backend transaction aborts and 500s are worth another attempt."""
    if not isinstance(error, UnknownServerError):
        return False
    message = error.message or ''
    return (
        'transaction' in message
        or 'abortTransaction' in message
        or error.status_code == 500
    )


def verify_entity(client, entity_type, entity_id, is_verified, reason='',
                  max_retries=None, retry_delay=None, sleep=time.sleep):
    """
    Approve or revoke verification for one vendor or restaurant.

    Transient backend failures are retried; the final error mentions the
    number of attempts made.
    """
    entity_type = _require_verifiable(entity_type)
    if not is_verified:
        reason = _require_reason(reason, 'revoke verification')

    if max_retries is None:
        max_retries = getattr(settings, 'VERIFICATION_MAX_RETRIES', 2)
    if retry_delay is None:
        retry_delay = getattr(settings, 'VERIFICATION_RETRY_DELAY', 1.0)

    attempt = 0
    while True:
        try:
            result = client.toggle_verification(entity_type, entity_id, is_verified, reason or '')
            logger.info(
                f"{entity_type.value} {entity_id} "
                f"{'verified' if is_verified else 'unverified'} (attempt {attempt + 1})"
            )
            return result
        except UnknownServerError as e:
            attempt += 1
            if is_transient(e) and attempt < max_retries:
                logger.warning(f"Retrying verification of {entity_type.value} {entity_id}: {e.message}")
                sleep(retry_delay)
                continue
            if attempt > 1:
                e.message = f'{e.message} (after {attempt} attempts)'
                e.args = (e.message,)
            raise


def deactivate_entity(client, entity_type, entity_id, reason):
    """
    Deactivate a vendor or restaurant. The backend decides whether
    dependencies block it; a refusal surfaces as DependencyConflict.
    """
    entity_type = _require_verifiable(entity_type)
    reason = _require_reason(reason, 'deactivate')
    result = client.deactivate(entity_type, entity_id, reason)
    logger.info(f"{entity_type.value} {entity_id} deactivated")
    return result


def safe_delete_entity(client, entity_type, entity_id, reason):
    """Delete a vendor or restaurant if nothing still depends on it."""
    entity_type = _require_verifiable(entity_type)
    reason = _require_reason(reason, 'delete')
    result = client.safe_delete(entity_type, entity_id, reason)
    logger.info(f"{entity_type.value} {entity_id} deleted")
    return result
