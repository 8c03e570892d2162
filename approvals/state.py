"""
Per-source load state for a dashboard.

Sources are fetched concurrently and may finish in any order. Each load
is tagged with a ticket; a result carrying an old ticket is dropped on
arrival so a slow response for a previous filter never overwrites the
data for the current one.
"""
import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

IDLE = 'idle'
LOADING = 'loading'
LOADED = 'loaded'
FAILED = 'failed'


@dataclass(frozen=True)
class LoadTicket:
    generation: int
    filter_key: tuple


@dataclass
class SourceResult:
    status: str = IDLE
    payload: dict = None
    error: Exception = None


class DashboardState:

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0
        self._filter_key = None
        self.sources = {}

    def begin(self, filter_state, entity_types):
        """
        Start a new load for ``entity_types``. Sources outside the new
        load are dropped so they no longer contribute to merges or stats.
        """
        with self._lock:
            self._generation += 1
            self._filter_key = filter_state.key
            self.sources = {entity_type: SourceResult(status=LOADING) for entity_type in entity_types}
            return LoadTicket(self._generation, self._filter_key)

    def is_current(self, ticket):
        return ticket.generation == self._generation and ticket.filter_key == self._filter_key

    def resolve(self, ticket, entity_type, payload):
        """Store a loaded page. Returns False if the ticket is stale."""
        with self._lock:
            if not self.is_current(ticket) or entity_type not in self.sources:
                logger.info(f"Discarding stale {entity_type.value} result (generation {ticket.generation})")
                return False
            self.sources[entity_type] = SourceResult(status=LOADED, payload=payload)
            return True

    def fail(self, ticket, entity_type, error):
        """Record a load error for one source only. False if stale."""
        with self._lock:
            if not self.is_current(ticket) or entity_type not in self.sources:
                logger.info(f"Discarding stale {entity_type.value} error (generation {ticket.generation})")
                return False
            self.sources[entity_type] = SourceResult(status=FAILED, error=error)
            return True

    @property
    def is_loading(self):
        return any(result.status == LOADING for result in self.sources.values())

    def loaded_payloads(self, order):
        """``(entity_type, payload)`` pairs in ``order``; None where not loaded."""
        pairs = []
        for entity_type in order:
            result = self.sources.get(entity_type)
            payload = result.payload if result and result.status == LOADED else None
            pairs.append((entity_type, payload))
        return pairs

    def errors(self):
        return {
            entity_type.value: getattr(result.error, 'message', str(result.error))
            for entity_type, result in self.sources.items()
            if result.status == FAILED
        }
