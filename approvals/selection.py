"""
Selection tracking and bulk actions for the approvals dashboards.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum

from .entities import EntityType
from .exceptions import ApprovalsError, DependencyConflict, ValidationFailure

logger = logging.getLogger(__name__)

SESSION_KEY = 'approvals_selection'


class SelectionSet:
    """
    Entities picked for a bulk action, keyed by ``(type, id)`` so the
    selection survives refetches and re-ordering of the underlying data.
    """

    def __init__(self, keys=None):
        self._keys = set()
        for key in keys or ():
            self.add(key)

    @staticmethod
    def _normalize(key):
        entity_type, entity_id = key
        return (EntityType(entity_type).value, str(entity_id))

    def __contains__(self, key):
        try:
            return self._normalize(key) in self._keys
        except (TypeError, ValueError):
            return False

    def __iter__(self):
        return iter(sorted(self._keys))

    def __len__(self):
        return len(self._keys)

    def __bool__(self):
        return bool(self._keys)

    def add(self, key):
        self._keys.add(self._normalize(key))

    def discard(self, key):
        self._keys.discard(self._normalize(key))

    def toggle(self, key):
        """Flip one checkbox. Returns True if the key is now selected."""
        key = self._normalize(key)
        if key in self._keys:
            self._keys.remove(key)
            return False
        self._keys.add(key)
        return True

    def select_all(self, entities):
        for entity in entities:
            self._keys.add(entity.key)

    def clear(self):
        self._keys.clear()

    def prune(self, entities, keep_types=()):
        """
        Drop keys that are no longer in ``entities`` (the latest merged
        list). Keys of ``keep_types`` (sources that failed to load) are
        left alone. Returns the removed keys.
        """
        present = {entity.key for entity in entities}
        kept = {EntityType(entity_type).value for entity_type in keep_types}
        stale = {key for key in self._keys if key not in present and key[0] not in kept}
        self._keys -= stale
        if stale:
            logger.debug(f"Pruned {len(stale)} stale selections")
        return stale

    def keys_for(self, entity_type):
        entity_type = EntityType(entity_type).value
        return [entity_id for key_type, entity_id in sorted(self._keys) if key_type == entity_type]

    def grouped(self):
        """``{EntityType: [ids]}`` for every type with a selection, vendors first."""
        groups = {}
        for entity_type in EntityType:
            ids = self.keys_for(entity_type)
            if ids:
                groups[entity_type] = ids
        return groups

    def to_session(self):
        return [list(key) for key in sorted(self._keys)]

    @classmethod
    def from_session(cls, data):
        selection = cls()
        for item in data or ():
            try:
                selection.add(item)
            except (TypeError, ValueError):
                continue
        return selection


def load_selection(session, scope):
    return SelectionSet.from_session(session.get(SESSION_KEY, {}).get(scope))


def save_selection(session, scope, selection):
    stored = dict(session.get(SESSION_KEY, {}))
    stored[scope] = selection.to_session()
    session[SESSION_KEY] = stored


def discard_stored(session, scope, keys):
    """
    Remove ``keys`` from the selection in the session store.

    The stored copy is re-read first, so selection changes saved by
    other requests while this one was running are kept.
    """
    current = session.load() if session.session_key else session
    stored = current.get(SESSION_KEY, {})
    selection = SelectionSet.from_session(stored.get(scope))
    for key in keys:
        selection.discard(key)

    stored = dict(stored)
    stored[scope] = selection.to_session()
    session[SESSION_KEY] = stored
    return selection


# ============ Bulk actions ============

class BulkAction(str, Enum):
    APPROVE = 'approve'
    REJECT = 'reject'
    FLAG = 'flag'
    UNFLAG = 'unflag'
    DELETE = 'delete'


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


REASON_REQUIRED = frozenset({BulkAction.REJECT, BulkAction.FLAG, BulkAction.DELETE})
MODERATION_ONLY = frozenset({BulkAction.FLAG, BulkAction.UNFLAG})

IDLE = 'idle'
PENDING = 'pending'
SUCCEEDED = 'succeeded'
FAILED = 'failed'


def parse_action(value):
    try:
        return BulkAction(value)
    except ValueError:
        raise ValidationFailure(f'Unknown bulk action: {value}', field='action')


@dataclass
class BulkActionRequest:
    entity_type: EntityType
    entity_ids: list
    action: BulkAction
    reason: str = None
    severity: str = None
    notes: str = None

    def validate(self):
        if not self.entity_ids:
            raise ValidationFailure('Select at least one item first.', field='entityIds')

        if self.action in REASON_REQUIRED and not (self.reason or '').strip():
            raise ValidationFailure(
                f'A reason is required to {self.action.value} the selected items.',
                field='reason',
            )

        if self.severity is not None:
            try:
                Severity(self.severity)
            except ValueError:
                raise ValidationFailure(f'Unknown severity: {self.severity}', field='severity')

        if self.action in MODERATION_ONLY and self.entity_type != EntityType.LISTING:
            raise ValidationFailure(
                f'{self.action.value.capitalize()} is only available for listings.',
                field='action',
            )

    def as_payload(self, id_field='entityIds'):
        payload = {
            id_field: list(self.entity_ids),
            'action': self.action.value,
        }
        if self.reason and self.reason.strip():
            payload['reason'] = self.reason.strip()
        if self.severity:
            payload['severity'] = self.severity
        if self.notes and self.notes.strip():
            payload['notes'] = self.notes.strip()
        return payload


@dataclass
class BulkActionResult:
    action: BulkAction
    updated: int = 0
    requested: int = 0
    per_type: dict = field(default_factory=dict)
    blocked: list = field(default_factory=list)

    def as_dict(self):
        return {
            'action': self.action.value,
            'updated': self.updated,
            'requested': self.requested,
            'perType': self.per_type,
            'blocked': self.blocked,
        }


class BulkActionCoordinator:
    """
    Sends one bulk request per entity type in the selection.

    The selection is cleared once the action completes, whether it
    succeeded or failed. ``refetch`` is called after a success so the
    dashboard reloads and prunes against fresh server data.

    A delete that removes at least one item counts as a success; ids the
    backend refused are listed in ``BulkActionResult.blocked``.
    """

    def __init__(self, client, selection, refetch=None):
        self.client = client
        self.selection = selection
        self.refetch = refetch
        self.state = IDLE

    def build_requests(self, action, reason=None, severity=None, notes=None):
        action = action if isinstance(action, BulkAction) else parse_action(action)
        groups = self.selection.grouped()
        if not groups:
            raise ValidationFailure('Select at least one item first.', field='entityIds')

        requests = [
            BulkActionRequest(entity_type, ids, action, reason, severity, notes)
            for entity_type, ids in groups.items()
        ]
        for request in requests:
            request.validate()
        return requests

    def submit(self, action, reason=None, severity=None, notes=None):
        # Validation happens before the first network call and keeps the selection
        requests = self.build_requests(action, reason, severity, notes)
        action = requests[0].action

        self.state = PENDING
        result = BulkActionResult(action=action, requested=len(self.selection))
        errors = []
        try:
            for request in requests:
                updated = self._dispatch(request, result, errors)
                result.per_type[request.entity_type.value] = updated
                result.updated += updated
            if errors and not result.updated:
                raise errors[0]
        except Exception:
            self.state = FAILED
            logger.warning(f"Bulk {action.value} failed after {result.updated} updates")
            raise
        finally:
            self.selection.clear()

        self.state = SUCCEEDED
        logger.info(f"Bulk {action.value} completed: {result.updated}/{result.requested} updated")

        if self.refetch is not None:
            self.refetch()
        return result

    def _dispatch(self, request, result, errors):
        ids = request.entity_ids

        if request.entity_type == EntityType.LISTING:
            response = self.client.bulk_moderate(request.as_payload('listingIds'))
            return int(response.get('updated', len(ids)))

        if request.action == BulkAction.DELETE:
            return self._delete_each(request, result, errors)

        response = self.client.bulk_verification(
            ids,
            request.entity_type,
            is_verified=request.action == BulkAction.APPROVE,
            reason=(request.reason or '').strip(),
        )
        return int(response.get('updated', len(ids)))

    def _delete_each(self, request, result, errors):
        """
        Safe-delete ids one by one. A blocked id is recorded in
        ``result.blocked`` and the remaining ids are still attempted.
        """
        reason = request.reason.strip()
        deleted = 0
        for entity_id in request.entity_ids:
            try:
                self.client.safe_delete(request.entity_type, entity_id, reason)
            except ApprovalsError as e:
                logger.warning(f"Could not delete {request.entity_type.value} {entity_id}: {e.message}")
                blocked = {
                    'type': request.entity_type.value,
                    'id': entity_id,
                    'message': e.message,
                }
                if isinstance(e, DependencyConflict):
                    blocked['dependencies'] = e.dependencies
                    blocked['suggestions'] = e.suggestions
                result.blocked.append(blocked)
                errors.append(e)
                continue
            deleted += 1
        return deleted
