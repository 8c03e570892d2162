"""
Merge independently fetched result pages into one list of entities.
"""
from .entities import VerifiableEntity


def records_from_payload(payload):
    """Return the ``data`` list of a list response, or [] if not loaded."""
    if not payload:
        return []
    records = payload.get('data') if isinstance(payload, dict) else None
    return list(records or [])


def merge_results(sources, sort_by=None, descending=False):
    """
    Combine ``(entity_type, payload)`` pairs into a flat list.

    Sources are concatenated in the order given, each keeping its own
    record order. A payload of None (not loaded yet, failed or skipped)
    contributes nothing. Source lists are read, never modified.
    """
    merged = []
    for entity_type, payload in sources:
        for record in records_from_payload(payload):
            merged.append(VerifiableEntity.from_record(entity_type, record))

    if sort_by:
        merged = sorted(
            merged,
            key=lambda entity: _sort_value(getattr(entity, sort_by, None)),
            reverse=descending,
        )

    return merged


def _sort_value(value):
    # None sorts last, strings without regard to case
    if value is None:
        return (1, '')
    if isinstance(value, str):
        return (0, value.lower())
    return (0, getattr(value, 'value', value))
