"""
Corpus builder for the blog.

Reads a directory tree of markdown files and builds the corpus index:
- Splits bundled files into single articles
- Parses each article's frontmatter
- Registers valid articles and rebuilds the taxonomy
- Collects every content and file error instead of stopping
- Exports the index as JSON for the site generator
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .document import Document
from .frontmatter_parser import FrontmatterError, parse_document
from .index import Corpus
from .related_resolver import DEFAULT_LIMIT
from .splitter import ARTICLE_SEPARATOR, split_documents

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".md", ".mdx")

CONTENT_ERROR = "content"
STRUCTURAL_ERROR = "structural"


class DuplicateDocumentError(ValueError):
    """Two articles derive the same id."""

    def __init__(self, document_id: str, first_source: Optional[Path], replaced: bool = True):
        where = f" (first defined in {first_source})" if first_source else ""
        outcome = "the later article replaces it" if replaced else "the later article is ignored while that file defines it"
        super().__init__(f"Duplicate id '{document_id}'{where}; {outcome}")
        self.document_id = document_id
        self.first_source = first_source


@dataclass(frozen=True)
class IngestError:
    """One problem found while reading the corpus."""
    source: str
    position: Optional[int]  # 1-based article index within the file, None for the whole file
    kind: str
    reason: str
    error_type: str

    @classmethod
    def from_exception(cls, source: Union[str, Path], position: Optional[int], exc: Exception) -> "IngestError":
        kind = STRUCTURAL_ERROR if isinstance(exc, OSError) else CONTENT_ERROR
        return cls(
            source=str(source),
            position=position,
            kind=kind,
            reason=str(exc),
            error_type=type(exc).__name__,
        )

    def describe(self) -> str:
        location = self.source if self.position is None else f"{self.source} [article {self.position}]"
        return f"{location}: {self.error_type}: {self.reason}"

    def to_dict(self) -> Dict:
        return {
            "source": self.source,
            "position": self.position,
            "kind": self.kind,
            "error": self.error_type,
            "reason": self.reason,
        }


@dataclass
class BuildReport:
    """Result of a corpus build."""
    corpus: Corpus
    files_scanned: int = 0
    errors: List[IngestError] = field(default_factory=list)
    # id -> files whose definition of that id was replaced by a later file
    shadowed: Dict[str, List[Path]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_stats(self) -> Dict:
        snapshot = self.corpus.snapshot
        return {
            "documents_count": len(self.corpus),
            "files_scanned": self.files_scanned,
            "errors_count": len(self.errors),
            "by_category": {item["name"]: item["count"] for item in snapshot.categories()},
        }


class CorpusBuilder:
    """Builds a Corpus from a directory of markdown files."""

    def __init__(
        self,
        content_dir: Union[str, Path],
        separator: str = ARTICLE_SEPARATOR,
        workers: int = 1,
        related_limit: int = DEFAULT_LIMIT,
    ):
        """Initialize corpus builder.

        Args:
            content_dir: Root directory holding the article files
            separator: Marker line between bundled articles
            workers: Number of threads used to parse files
            related_limit: Default number of related articles per query
        """
        self.content_dir = Path(content_dir)
        self.separator = separator
        self.workers = max(1, workers)
        self.related_limit = related_limit

    def discover_files(self) -> List[Path]:
        """List article files under the content directory, sorted by path."""
        if not self.content_dir.is_dir():
            raise FileNotFoundError(f"Content directory not found: {self.content_dir}")

        return sorted(
            path for path in self.content_dir.rglob("*")
            if path.is_file() and path.suffix in SOURCE_SUFFIXES
        )

    def load_file(self, path: Union[str, Path]) -> Tuple[List[Document], List[IngestError]]:
        """Read, split and parse one file.

        Args:
            path: File to load

        Returns:
            Tuple of (parsed documents, errors); a read failure yields no
            documents and a single structural error
        """
        articles, errors = self.load_articles(path)
        return [document for _, document in articles], errors

    def load_articles(self, path: Union[str, Path]) -> Tuple[List[Tuple[int, Document]], List[IngestError]]:
        """Like load_file, but pairs each document with its 1-based position in the file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Cannot read {path}: {exc}")
            if isinstance(exc, UnicodeDecodeError):
                exc = OSError(f"not valid UTF-8 ({exc.reason})")
            return [], [IngestError.from_exception(path, None, exc)]

        articles = []
        errors = []
        for position, chunk in enumerate(split_documents(text, self.separator), start=1):
            try:
                articles.append((position, parse_document(chunk, source=path)))
            except FrontmatterError as exc:
                logger.debug(f"Skipping article {position} in {path}: {exc}")
                errors.append(IngestError.from_exception(path, position, exc))

        return articles, errors

    def build(self, files: Optional[List[Path]] = None) -> BuildReport:
        """Build a fresh Corpus from the content directory.

        Args:
            files: Explicit file list (default: every article file found)

        Returns:
            BuildReport with the corpus and every error found
        """
        if files is None:
            files = self.discover_files()

        corpus = Corpus(related_limit=self.related_limit)
        report = BuildReport(corpus=corpus, files_scanned=len(files))

        if self.workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                results = list(executor.map(self.load_articles, files))
        else:
            results = [self.load_articles(path) for path in files]

        entries = []
        seen: Dict[str, Optional[Path]] = {}
        # Files are processed in path order, so the later article wins deterministically
        for path, (articles, errors) in zip(files, results):
            report.errors.extend(errors)
            for position, document in articles:
                if document.id in seen:
                    first_source = seen[document.id]
                    duplicate = DuplicateDocumentError(document.id, first_source)
                    report.errors.append(IngestError.from_exception(path, position, duplicate))
                    logger.warning(str(duplicate))
                    if first_source != path:
                        report.shadowed.setdefault(document.id, []).append(first_source)
                seen[document.id] = path
                entries.append((document, path))

        corpus.upsert_many(entries)

        logger.info(
            f"Built corpus: {len(corpus)} documents from {len(files)} files "
            f"({len(report.errors)} errors)"
        )
        return report

    def export_index(self, report: BuildReport, output_path: Union[str, Path]) -> Path:
        """Write the corpus index as JSON.

        Args:
            report: Result of build()
            output_path: JSON file to write

        Returns:
            Path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(build_index_data(report), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        return output_path


def build_index_data(report: BuildReport) -> Dict:
    """Build the JSON-ready index for a finished build."""
    corpus = report.corpus
    snapshot = corpus.snapshot

    documents = {}
    for document in corpus.recent():
        entry = document.to_dict()
        source = corpus.registry.source_of(document.id)
        entry["source"] = str(source) if source else None
        entry["related"] = [related.id for related in corpus.related_to(document.id)]
        documents[document.id] = entry

    return {
        "version": "1.0",
        "created_at": datetime.now().isoformat(),
        "total_documents": len(documents),
        "documents": documents,
        "categories": snapshot.categories(),
        "tags": snapshot.tags(),
        "index": snapshot.to_dict(),
        "warnings": [error.to_dict() for error in report.errors],
    }
