"""
Taxonomy indexer for the blog corpus.

Builds the category and tag indices used to list articles:

    {
        "categories": {"AWS": ["lambda-cost-tuning", "lambda-cold-starts"]},
        "tags": {"lambda": ["lambda-cost-tuning", "lambda-cold-starts"]}
    }

Every list is ordered by date (newest first), ties broken by id. An index is
an immutable snapshot: a rebuild creates a new snapshot and swaps the
reference, so readers holding the old one keep a consistent view.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .document import Document

logger = logging.getLogger(__name__)


def _sort_key(document: Document):
    return (-document.date.toordinal(), document.id)


class TaxonomySnapshot:
    """Read-only category and tag index over one set of documents."""

    def __init__(
        self,
        documents: Mapping[str, Document],
        categories: Mapping[str, Tuple[str, ...]],
        tags: Mapping[str, Tuple[str, ...]],
    ):
        self._documents = MappingProxyType(dict(documents))
        self._categories = MappingProxyType(dict(categories))
        self._tags = MappingProxyType(dict(tags))

    @classmethod
    def empty(cls) -> "TaxonomySnapshot":
        return cls({}, {}, {})

    @property
    def categories_index(self) -> Mapping[str, Tuple[str, ...]]:
        return self._categories

    @property
    def tags_index(self) -> Mapping[str, Tuple[str, ...]]:
        return self._tags

    def document(self, document_id: str):
        return self._documents.get(document_id)

    def documents_in_category(self, category: str) -> Tuple[str, ...]:
        return self._categories.get(category, ())

    def documents_with_tag(self, tag: str) -> Tuple[str, ...]:
        return self._tags.get(tag, ())

    def ordered_ids(self) -> Tuple[str, ...]:
        """All document ids, newest first."""
        return tuple(doc.id for doc in sorted(self._documents.values(), key=_sort_key))

    def categories(self) -> List[Dict[str, object]]:
        """Categories with their document counts, largest first."""
        counts = [{"name": name, "count": len(ids)} for name, ids in self._categories.items()]
        return sorted(counts, key=lambda item: (-item["count"], item["name"]))

    def tags(self) -> List[Dict[str, object]]:
        """Tags with their document counts, largest first."""
        counts = [{"name": name, "count": len(ids)} for name, ids in self._tags.items()]
        return sorted(counts, key=lambda item: (-item["count"], item["name"]))

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            "categories": {name: list(ids) for name, ids in sorted(self._categories.items())},
            "tags": {name: list(ids) for name, ids in sorted(self._tags.items())},
        }

    def __len__(self) -> int:
        return len(self._documents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TaxonomySnapshot):
            return NotImplemented
        return (
            dict(self._categories) == dict(other._categories)
            and dict(self._tags) == dict(other._tags)
        )


def build_taxonomy(documents: Iterable[Document]) -> TaxonomySnapshot:
    """Build a fresh snapshot from a full set of documents.

    Args:
        documents: Every document in the corpus

    Returns:
        New TaxonomySnapshot
    """
    by_id: Dict[str, Document] = {}
    for document in documents:
        by_id[document.id] = document

    ordered = sorted(by_id.values(), key=_sort_key)

    categories: Dict[str, List[str]] = defaultdict(list)
    tags: Dict[str, List[str]] = defaultdict(list)
    for document in ordered:
        categories[document.category].append(document.id)
        for tag in document.tags:
            tags[tag].append(document.id)

    return TaxonomySnapshot(
        by_id,
        {name: tuple(ids) for name, ids in categories.items()},
        {name: tuple(ids) for name, ids in tags.items()},
    )


class TaxonomyIndexer:
    """Owns the current taxonomy snapshot."""

    def __init__(self):
        self._snapshot = TaxonomySnapshot.empty()
        self._rebuild_lock = threading.Lock()

    @property
    def snapshot(self) -> TaxonomySnapshot:
        return self._snapshot

    def rebuild(self, documents: Iterable[Document]) -> TaxonomySnapshot:
        """Replace the current snapshot with one built from ``documents``.

        The new snapshot is fully built before the reference is swapped.
        """
        with self._rebuild_lock:
            snapshot = build_taxonomy(documents)
            self._snapshot = snapshot
        logger.debug(
            f"Taxonomy rebuilt: {len(snapshot)} documents, "
            f"{len(snapshot.categories_index)} categories, {len(snapshot.tags_index)} tags"
        )
        return snapshot
