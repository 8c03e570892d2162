"""
Combined statistics across the loaded collections.
"""
from dataclasses import dataclass, asdict

from .entities import VerificationStatus


@dataclass(frozen=True)
class CombinedStats:
    total: int = 0
    pending: int = 0
    verified: int = 0
    rejected: int = 0
    vendors: int = 0
    restaurants: int = 0
    listings: int = 0

    def as_dict(self):
        return asdict(self)


def aggregate_stats(vendors=None, restaurants=None, listings=None):
    """
    Count entities over whatever has been loaded so far.

    Any collection may be None (still loading, failed, or not part of the
    current tab) and is counted as empty. Recomputed from scratch on every
    call so counts can't drift from the data on screen.
    """
    vendors = list(vendors or [])
    restaurants = list(restaurants or [])
    listings = list(listings or [])
    everything = vendors + restaurants + listings

    return CombinedStats(
        total=len(everything),
        pending=sum(1 for entity in everything if not entity.is_verified),
        verified=sum(1 for entity in everything if entity.is_verified),
        rejected=sum(1 for entity in everything if entity.status == VerificationStatus.REJECTED),
        vendors=len(vendors),
        restaurants=len(restaurants),
        listings=len(listings),
    )
