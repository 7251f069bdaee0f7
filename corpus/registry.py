"""
Document registry.

Holds every parsed Document for the lifetime of the process, keyed by id.
The source files stay the source of truth; the registry is rebuilt from them
on startup.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .document import Document

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """In-memory store of documents keyed by id."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._sources: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def upsert(self, document: Document, source: Optional[Union[str, Path]] = None) -> Optional[Document]:
        """Insert a document or replace the one with the same id.

        Args:
            document: Document to store
            source: File the document was read from

        Returns:
            The replaced document, or None if the id was new

        Raises:
            ValueError: If the document id is empty
        """
        if not document.id:
            raise ValueError("Cannot register a document with an empty id")

        with self._lock:
            previous = self._documents.get(document.id)
            self._documents[document.id] = document
            if source is not None:
                self._sources[document.id] = Path(source)
            else:
                self._sources.pop(document.id, None)

        if previous is not None:
            logger.debug(f"Replaced document '{document.id}'")
        return previous

    def get(self, document_id: str) -> Optional[Document]:
        """Return the document with this id, or None if unknown."""
        return self._documents.get(document_id)

    def remove(self, document_id: str) -> Optional[Document]:
        with self._lock:
            self._sources.pop(document_id, None)
            return self._documents.pop(document_id, None)

    def remove_source(self, source: Union[str, Path]) -> List[str]:
        """Remove every document that was read from ``source``.

        Returns:
            Ids of the removed documents
        """
        source = Path(source)
        with self._lock:
            removed = [doc_id for doc_id, path in self._sources.items() if path == source]
            for doc_id in removed:
                self._sources.pop(doc_id)
                self._documents.pop(doc_id)
        return removed

    def source_of(self, document_id: str) -> Optional[Path]:
        return self._sources.get(document_id)

    def all(self) -> Iterator[Document]:
        """Iterate over all documents.

        Each call starts a fresh pass over a snapshot of the registry, so
        writers never invalidate a running iteration. Order is unspecified.
        """
        with self._lock:
            documents = list(self._documents.values())
        return iter(documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents
