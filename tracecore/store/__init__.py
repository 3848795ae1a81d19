"""In-memory artifact store, reference cleanup, and trash lifecycle."""

from tracecore.store.artifacts import ArtifactStore
from tracecore.store.events import ArtifactRemoved, RecordErased, RecordSaved
from tracecore.store.references import ReferenceRegistry
from tracecore.store.trash import TrashBin, TrashState

__all__ = [
    "ArtifactRemoved",
    "ArtifactStore",
    "RecordErased",
    "RecordSaved",
    "ReferenceRegistry",
    "TrashBin",
    "TrashState",
]
