"""
Queryable corpus index.

Ties the registry, the taxonomy indexer and the related-content resolver
together. Every registry change rebuilds the taxonomy snapshot.

Usage:
    from corpus import Corpus

    corpus = Corpus()
    corpus.upsert_many(documents)
    corpus.get("aws-lambda-cold-starts")
    corpus.snapshot.documents_in_category("AWS")
    corpus.related_to("aws-lambda-cold-starts", limit=3)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .document import Document
from .registry import DocumentRegistry
from .related_resolver import DEFAULT_LIMIT, RelatedContentResolver
from .taxonomy import TaxonomyIndexer, TaxonomySnapshot


class Corpus:
    """Registry plus derived indices for one set of blog articles."""

    def __init__(self, related_limit: int = DEFAULT_LIMIT):
        self.registry = DocumentRegistry()
        self.indexer = TaxonomyIndexer()
        self.resolver = RelatedContentResolver(self.indexer, default_limit=related_limit)
        # Single writer: a mutation and its rebuild are applied together
        self._write_lock = threading.RLock()

    @property
    def snapshot(self) -> TaxonomySnapshot:
        return self.indexer.snapshot

    def upsert(self, document: Document, source: Optional[Union[str, Path]] = None) -> Optional[Document]:
        """Insert or replace a document and rebuild the indices.

        Returns:
            The replaced document, or None if the id was new
        """
        with self._write_lock:
            previous = self.registry.upsert(document, source)
            self.indexer.rebuild(self.registry.all())
        return previous

    def upsert_many(self, entries: Iterable[Union[Document, Tuple[Document, Optional[Path]]]]) -> List[Document]:
        """Insert or replace several documents with a single rebuild.

        Args:
            entries: Documents, or (document, source) pairs

        Returns:
            Documents that were replaced
        """
        replaced = []
        with self._write_lock:
            for entry in entries:
                if isinstance(entry, Document):
                    document, source = entry, None
                else:
                    document, source = entry
                previous = self.registry.upsert(document, source)
                if previous is not None:
                    replaced.append(previous)
            self.indexer.rebuild(self.registry.all())
        return replaced

    def replace_source(self, source: Union[str, Path], documents: Iterable[Document]) -> List[str]:
        """Swap all documents of one file for a new set, with a single rebuild.

        Returns:
            Ids that were removed and not re-added
        """
        with self._write_lock:
            removed = self.registry.remove_source(source)
            added = set()
            for document in documents:
                self.registry.upsert(document, source)
                added.add(document.id)
            self.indexer.rebuild(self.registry.all())
        return [doc_id for doc_id in removed if doc_id not in added]

    def remove(self, document_id: str) -> Optional[Document]:
        with self._write_lock:
            removed = self.registry.remove(document_id)
            if removed is not None:
                self.indexer.rebuild(self.registry.all())
        return removed

    def get(self, document_id: str) -> Optional[Document]:
        return self.registry.get(document_id)

    def all(self) -> Iterator[Document]:
        return self.registry.all()

    def recent(self, limit: Optional[int] = None) -> List[Document]:
        """Documents newest first."""
        snapshot = self.snapshot
        ids = snapshot.ordered_ids()
        if limit is not None:
            ids = ids[:max(limit, 0)]
        return [snapshot.document(doc_id) for doc_id in ids]

    def featured(self, limit: int = 5) -> List[Document]:
        """Featured documents, newest first."""
        return [doc for doc in self.recent() if doc.featured][:max(limit, 0)]

    def in_category(self, category: str) -> List[Document]:
        snapshot = self.snapshot
        return [snapshot.document(doc_id) for doc_id in snapshot.documents_in_category(category)]

    def with_tag(self, tag: str) -> List[Document]:
        snapshot = self.snapshot
        return [snapshot.document(doc_id) for doc_id in snapshot.documents_with_tag(tag)]

    def related_to(self, document_id: str, limit: Optional[int] = None) -> List[Document]:
        return self.resolver.related_to(document_id, limit)

    def __len__(self) -> int:
        return len(self.registry)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self.registry
