"""Application interfaces (ports): document store and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from muskoka.infrastructure.
"""

from muskoka.application.interfaces.services import IBlobStore, IEventPublisher
from muskoka.application.interfaces.store import (
    DocumentSnapshot,
    DocumentStore,
    FieldFilter,
    FieldPath,
    Query,
    Transaction,
)

__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "FieldFilter",
    "FieldPath",
    "IBlobStore",
    "IEventPublisher",
    "Query",
    "Transaction",
]
