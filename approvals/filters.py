"""
Client-side search and status filtering over merged entities.
"""
from .entities import VerificationStatus, dig


# Raw record fields searched in addition to the normalised ones
RAW_SEARCH_PATHS = (
    ('businessName',),
    ('name',),
    ('ownerName',),
    ('email',),
    ('createdBy', 'name'),
    ('createdBy', 'email'),
)


def _contains(value, needle):
    if not isinstance(value, str):
        return False
    return needle in value.lower()


def matches_search(entity, search):
    """
    True if any name, owner or email field contains ``search``,
    ignoring case. Missing fields never match.
    """
    needle = (search or '').strip().lower()
    if not needle:
        return True

    if any(_contains(value, needle) for value in (entity.name, entity.owner_name, entity.email)):
        return True

    raw = entity.raw or {}
    return any(_contains(dig(raw, *path), needle) for path in RAW_SEARCH_PATHS)


def matches_status(entity, status):
    """
    Status filter predicate.

    Without an explicit backend status, ``pending`` and ``unverified``
    both mean "not verified yet". When the backend sends one they are
    told apart.
    """
    if status == 'all':
        return True
    if status == 'verified':
        return entity.is_verified
    if status == 'pending':
        if entity.has_explicit_status:
            return entity.status == VerificationStatus.PENDING
        return not entity.is_verified
    if status == 'unverified':
        if entity.has_explicit_status:
            return entity.status in (VerificationStatus.UNVERIFIED, VerificationStatus.REJECTED)
        return not entity.is_verified
    if status == 'rejected':
        return entity.status == VerificationStatus.REJECTED
    return False


def filter_entities(entities, filter_state):
    """Apply search AND status, keeping the merged order."""
    return [
        entity for entity in entities
        if matches_search(entity, filter_state.search)
        and matches_status(entity, filter_state.status)
    ]
