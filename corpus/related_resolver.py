"""
Related-content resolver for blog articles.

Ranks other articles by how closely they relate to a given one:
1. Same category ranks above other categories
2. More shared tags ranks higher
3. Newer articles first
4. Id as the final tie-break

Only articles that share the category or at least one tag are candidates.

Usage:
    from corpus.related_resolver import RelatedContentResolver

    resolver = RelatedContentResolver(indexer)
    related = resolver.related_to("aws-lambda-cold-starts", limit=3)
"""

from __future__ import annotations

from typing import List, Optional, Set

from .document import Document
from .taxonomy import TaxonomyIndexer, TaxonomySnapshot

DEFAULT_LIMIT = 3


class RelatedContentResolver:
    """Find articles related to a given article through the taxonomy index."""

    def __init__(self, indexer: TaxonomyIndexer, default_limit: int = DEFAULT_LIMIT):
        """Initialize resolver.

        Args:
            indexer: Indexer whose current snapshot is queried
            default_limit: Number of results when no limit is given
        """
        self.indexer = indexer
        self.default_limit = default_limit

    def related_to(self, document_id: str, limit: Optional[int] = None) -> List[Document]:
        """Return up to ``limit`` articles related to ``document_id``.

        Args:
            document_id: Id of the article to find relations for
            limit: Maximum number of results (default: self.default_limit)

        Returns:
            Ranked list of related documents; empty if the article is unknown
            or has no relations
        """
        if limit is None:
            limit = self.default_limit
        if limit <= 0:
            return []

        # Pin one snapshot for the whole query
        snapshot = self.indexer.snapshot
        document = snapshot.document(document_id)
        if document is None:
            return []

        candidates = self._candidate_ids(snapshot, document)
        candidates.discard(document.id)

        ranked = sorted(
            (snapshot.document(candidate_id) for candidate_id in candidates),
            key=lambda other: self._rank_key(document, other),
        )
        return ranked[:limit]

    def _candidate_ids(self, snapshot: TaxonomySnapshot, document: Document) -> Set[str]:
        candidates = set(snapshot.documents_in_category(document.category))
        for tag in document.tags:
            candidates.update(snapshot.documents_with_tag(tag))
        return candidates

    @staticmethod
    def _rank_key(document: Document, other: Document):
        same_category = 0 if other.category == document.category else 1
        shared_tags = len(document.tags & other.tags)
        return (same_category, -shared_tags, -other.date.toordinal(), other.id)
