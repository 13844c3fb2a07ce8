"""Core constants: document store layout and shared literal values.

Firestore has no DDL or migrations. Collections are created automatically
when the first document is written; these names act as the schema.
"""

# Task documents (document id = task key)
COLLECTION_TRANSITIONS = "transitions"

# Index counter: transitions-meta/next-index {"next-index": <int>}
COLLECTION_TRANSITIONS_META = "transitions-meta"
DOC_NEXT_INDEX = "next-index"
FIELD_NEXT_INDEX = "next-index"

# Task document fields
FIELD_INDEX = "index"
FIELD_BLOCKS = "blocks"
FIELD_SPEC_VERSION = "spec-version"
FIELD_SPEC_CONFIG = "spec-config"
FIELD_CREATED = "created"
FIELD_RESULTS = "results"
FIELD_HAS_FAIL = "has-fail"
FIELD_WORKERS = "workers"
FIELD_WORKERS_VERSIONED = "workers-versioned"

# Fields returned by listings; the worker maps and has-fail exist only for filtering.
LISTING_FIELDS = (
    FIELD_INDEX,
    FIELD_BLOCKS,
    FIELD_SPEC_VERSION,
    FIELD_SPEC_CONFIG,
    FIELD_CREATED,
    FIELD_RESULTS,
)

# Artifact names inside a task's blob directory
ARTIFACT_PRE_STATE = "pre.ssz"
ARTIFACT_BLOCK_TEMPLATE = "block_{}.ssz"
