"""
Verifiable entities - one homogeneous shape over vendor, restaurant and
listing records coming back from the marketplace API.
"""
from dataclasses import dataclass, field
from enum import Enum


class EntityType(str, Enum):
    VENDOR = 'vendor'
    RESTAURANT = 'restaurant'
    LISTING = 'listing'

    @classmethod
    def parse(cls, value):
        """Return the member for ``value`` or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class VerificationStatus(str, Enum):
    PENDING = 'pending'
    VERIFIED = 'verified'
    UNVERIFIED = 'unverified'
    REJECTED = 'rejected'


# Backend ``verificationStatus`` values
BACKEND_STATUS_MAP = {
    'approved': VerificationStatus.VERIFIED,
    'verified': VerificationStatus.VERIFIED,
    'pending': VerificationStatus.PENDING,
    'rejected': VerificationStatus.REJECTED,
    'unverified': VerificationStatus.UNVERIFIED,
}


def dig(record, *path):
    """Walk nested dicts, returning None as soon as a step is missing."""
    value = record
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _first(record, *paths):
    for path in paths:
        value = dig(record, *path)
        if value not in (None, ''):
            return value
    return None


def _owner_name(record):
    return _first(record, ('ownerName',), ('createdBy', 'name'), ('owner', 'name'))


def _owner_email(record):
    return _first(record, ('email',), ('createdBy', 'email'), ('owner', 'email'))


FIELD_ACCESSORS = {
    EntityType.VENDOR: {
        'name': lambda r: _first(r, ('businessName',), ('name',)),
        'owner_name': _owner_name,
        'email': _owner_email,
    },
    EntityType.RESTAURANT: {
        'name': lambda r: _first(r, ('name',), ('businessName',)),
        'owner_name': _owner_name,
        'email': _owner_email,
    },
    EntityType.LISTING: {
        'name': lambda r: _first(r, ('product', 'name'), ('productId', 'name'), ('name',)),
        'owner_name': lambda r: _first(
            r, ('vendor', 'businessName'), ('vendorId', 'businessName')
        ),
        'email': lambda r: _first(r, ('vendor', 'email'), ('vendorId', 'email')),
    },
}


@dataclass(frozen=True)
class VerifiableEntity:
    """
    A vendor, restaurant or listing awaiting (or past) an admin decision.

    ``(type, id)`` is the unique key; ids are only unique within a type.
    ``raw`` is the untouched backend record for the front-end to render.
    """
    type: EntityType
    id: str
    name: str = None
    owner_name: str = None
    email: str = None
    is_verified: bool = False
    status: VerificationStatus = VerificationStatus.PENDING
    has_explicit_status: bool = False
    raw: dict = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def key(self):
        return (self.type.value, self.id)

    @classmethod
    def from_record(cls, entity_type, record):
        """Build an entity from one backend record of the given type."""
        entity_type = EntityType(entity_type)
        accessors = FIELD_ACCESSORS[entity_type]

        record_id = record.get('_id', record.get('id'))
        backend_status = record.get('verificationStatus')
        explicit = BACKEND_STATUS_MAP.get(str(backend_status).lower()) if backend_status else None

        if 'isVerified' in record and record['isVerified'] is not None:
            is_verified = bool(record['isVerified'])
        else:
            is_verified = explicit == VerificationStatus.VERIFIED

        if explicit is not None:
            status = explicit
        elif is_verified:
            status = VerificationStatus.VERIFIED
        else:
            status = VerificationStatus.PENDING

        return cls(
            type=entity_type,
            id='' if record_id is None else str(record_id),
            name=accessors['name'](record),
            owner_name=accessors['owner_name'](record),
            email=accessors['email'](record),
            is_verified=is_verified,
            status=status,
            has_explicit_status=explicit is not None,
            raw=record,
        )

    def as_dict(self):
        return {
            'type': self.type.value,
            'id': self.id,
            'name': self.name,
            'ownerName': self.owner_name,
            'email': self.email,
            'isVerified': self.is_verified,
            'status': self.status.value,
            'record': self.raw,
        }
