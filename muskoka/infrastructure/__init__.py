"""Infrastructure adapters: document stores, artifact storage, messaging."""
