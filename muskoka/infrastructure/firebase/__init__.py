"""Firestore integration over the REST API."""

from muskoka.infrastructure.firebase.client import (
    close_firebase,
    get_firestore_client,
    init_firebase,
)
from muskoka.infrastructure.firebase.document_store import FirestoreDocumentStore

__all__ = [
    "FirestoreDocumentStore",
    "close_firebase",
    "get_firestore_client",
    "init_firebase",
]
