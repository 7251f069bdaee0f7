"""
Corpus module for blog article indexing.

This module provides functionality for:
- Splitting files that bundle several articles
- Parsing YAML frontmatter into Documents
- Registering documents and building category/tag indices
- Finding related articles
- Building the corpus from a content directory and exporting it as JSON

File structure:
    content/blog/
        lambda-cold-starts.md    - One article
        aws-cost-series.md       - Several articles separated by <!--ARTICLE-->

Frontmatter format:
    ---
    title: AWS Lambda Cold Starts
    description: What happens before your handler runs
    date: 2025-03-07
    category: AWS
    tags: [lambda, serverless]
    featured: false
    affiliateSection: aws-books    # optional
    ---

Usage:
    from corpus import CorpusBuilder

    builder = CorpusBuilder(Path("content/blog"))
    report = builder.build()
    corpus = report.corpus

    corpus.get("aws-lambda-cold-starts")
    corpus.in_category("AWS")
    corpus.related_to("aws-lambda-cold-starts", limit=3)
"""

from .document import Document, slugify
from .frontmatter_parser import (
    FrontmatterError,
    InvalidFieldError,
    MissingFrontmatterError,
    UnterminatedFrontmatterError,
    parse_document,
    serialize_document,
)
from .splitter import ARTICLE_SEPARATOR, split_documents
from .registry import DocumentRegistry
from .taxonomy import TaxonomyIndexer, TaxonomySnapshot, build_taxonomy
from .related_resolver import RelatedContentResolver
from .index import Corpus
from .builder import BuildReport, CorpusBuilder, DuplicateDocumentError, IngestError
from .updater import CorpusUpdater

__all__ = [
    "Document",
    "slugify",
    "FrontmatterError",
    "InvalidFieldError",
    "MissingFrontmatterError",
    "UnterminatedFrontmatterError",
    "parse_document",
    "serialize_document",
    "ARTICLE_SEPARATOR",
    "split_documents",
    "DocumentRegistry",
    "TaxonomyIndexer",
    "TaxonomySnapshot",
    "build_taxonomy",
    "RelatedContentResolver",
    "Corpus",
    "BuildReport",
    "CorpusBuilder",
    "DuplicateDocumentError",
    "IngestError",
    "CorpusUpdater",
]

__version__ = "1.0.0"
