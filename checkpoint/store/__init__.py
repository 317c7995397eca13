"""
Append-only multi-document YAML stores.

The changelog and the context file are both sequences of YAML documents
separated by ``---`` lines. Each document is parsed independently so that a
malformed document never corrupts its neighbours.

Components:
- documents: splitting and framing of raw store text
- backend: file and in-memory storage behind one small protocol
- store: DocumentStore (decode-with-skip, append, tail backfill)

Design principles:
- Append-only: documents are written once and never reordered or deleted
- Tail-only mutation: only the last document's commit_hash is ever patched
- Tolerant reads: per-document failures are counted, not raised
"""

from .backend import FileBackend, MemoryBackend, StoreBackend
from .documents import DELIMITER, frame_document, join_documents, split_documents
from .store import DecodeResult, DocumentStore

__all__ = [
    "DELIMITER",
    "DecodeResult",
    "DocumentStore",
    "FileBackend",
    "MemoryBackend",
    "StoreBackend",
    "frame_document",
    "join_documents",
    "split_documents",
]
