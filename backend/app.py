from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from corpus import BuildReport, Corpus, CorpusBuilder, CorpusUpdater, Document, IngestError
from corpus.splitter import ARTICLE_SEPARATOR

BASE_DIR = Path.cwd()

# Load environment variables from .env file
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Configuration
CONTENT_DIR = Path(os.environ.get("CONTENT_DIR", BASE_DIR / "content" / "blog"))
INGEST_WORKERS = int(os.environ.get("INGEST_WORKERS", "4"))
RELATED_LIMIT = int(os.environ.get("RELATED_LIMIT", "3"))
DEFAULT_PORT = int(os.environ.get("PORT", "8800"))


class DocumentSummary(BaseModel):
    id: str
    title: str
    description: str
    date: str
    category: str
    tags: List[str]
    featured: bool
    affiliateSection: Optional[str] = None
    coverImage: Optional[str] = None
    excerpt: str
    readingTime: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentSummary":
        data = document.to_dict()
        return cls(**{name: data[name] for name in cls.model_fields})


class TocEntry(BaseModel):
    id: str
    text: str
    level: int


class DocumentDetail(DocumentSummary):
    body: str
    wordCount: int
    tableOfContents: List[TocEntry]
    related: List[DocumentSummary] = Field(default_factory=list)


class TermCount(BaseModel):
    name: str
    count: int


class IngestWarning(BaseModel):
    source: str
    position: Optional[int] = None
    kind: str
    error: str
    reason: str

    @classmethod
    def from_error(cls, error: IngestError) -> "IngestWarning":
        return cls(**error.to_dict())


class ChangePayload(BaseModel):
    paths: List[str] = Field(..., min_length=1, max_length=500)

    @field_validator("paths")
    @classmethod
    def clean_paths(cls, value: List[str]) -> List[str]:
        cleaned = [path.strip() for path in value if path.strip()]
        if not cleaned:
            raise ValueError("At least one path is required.")
        return cleaned


class CorpusState:
    """Current corpus and the warnings from the build that produced it."""

    def __init__(self, builder: CorpusBuilder):
        self.builder = builder
        self.corpus = Corpus(related_limit=builder.related_limit)
        self.warnings: List[IngestError] = []
        self.updater: Optional[CorpusUpdater] = None

    def load(self) -> BuildReport:
        try:
            report = self.builder.build()
        except FileNotFoundError as exc:
            logger.warning(f"⚠ {exc}")
            logger.warning("  Serving an empty corpus until content is added and /api/reload is called")
            report = BuildReport(corpus=Corpus(related_limit=self.builder.related_limit))

        for error in report.errors:
            logger.warning(f"⚠ {error.describe()}")

        if self.updater is not None:
            self.updater.stop()
        self.corpus = report.corpus
        self.warnings = list(report.errors)
        self.updater = CorpusUpdater(
            self.builder, self.corpus, on_errors=self._record_errors, claimants=report.shadowed
        )
        self.updater.start()

        logger.info(f"✓ Corpus loaded: {len(self.corpus)} documents, {len(self.warnings)} warnings")
        return report

    def _record_errors(self, path: Path, errors: List[IngestError]) -> None:
        self.warnings = [w for w in self.warnings if w.source != str(path)] + list(errors)


def create_app(
    content_dir: Path = CONTENT_DIR,
    separator: str = ARTICLE_SEPARATOR,
    workers: int = INGEST_WORKERS,
    related_limit: int = RELATED_LIMIT,
) -> FastAPI:
    """Create the read-only query API over a content directory."""
    content_dir = Path(content_dir)
    state = CorpusState(CorpusBuilder(content_dir, separator=separator, workers=workers, related_limit=related_limit))
    state.load()

    app = FastAPI(title="Blog Corpus Index", version="1.0.0")
    app.state.corpus_state = state

    # For production, set CORS_ORIGINS="https://yourdomain.com,https://app.yourdomain.com"
    cors_origins_str = os.environ.get("CORS_ORIGINS", "*")
    if cors_origins_str == "*":
        allowed_origins = ["*"]
    else:
        allowed_origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
        logger.info(f"CORS allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check() -> Dict[str, object]:
        return {"status": "ok", "documents": len(state.corpus)}

    @app.get("/api/documents", response_model=List[DocumentSummary])
    def list_documents(
        limit: Optional[int] = Query(None, ge=1, le=1000),
        category: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> List[DocumentSummary]:
        """List documents newest first, optionally filtered by category and tag."""
        documents = state.corpus.recent()
        if category is not None:
            documents = [doc for doc in documents if doc.category == category]
        if tag is not None:
            documents = [doc for doc in documents if tag in doc.tags]
        if limit is not None:
            documents = documents[:limit]
        return [DocumentSummary.from_document(doc) for doc in documents]

    @app.get("/api/documents/{doc_id}", response_model=DocumentDetail)
    def get_document(doc_id: str) -> DocumentDetail:
        document = state.corpus.get(doc_id)
        if document is None:
            raise HTTPException(status_code=404, detail=f"Document '{doc_id}' not found.")

        data = document.to_dict(include_body=True)
        data["related"] = [DocumentSummary.from_document(doc) for doc in state.corpus.related_to(doc_id)]
        return DocumentDetail(**data)

    @app.get("/api/documents/{doc_id}/related", response_model=List[DocumentSummary])
    def get_related(doc_id: str, limit: Optional[int] = Query(None, ge=0, le=50)) -> List[DocumentSummary]:
        """Related documents; empty for unknown or unrelated documents."""
        return [DocumentSummary.from_document(doc) for doc in state.corpus.related_to(doc_id, limit)]

    @app.get("/api/featured", response_model=List[DocumentSummary])
    def list_featured(limit: int = Query(5, ge=1, le=100)) -> List[DocumentSummary]:
        return [DocumentSummary.from_document(doc) for doc in state.corpus.featured(limit)]

    @app.get("/api/categories", response_model=List[TermCount])
    def list_categories() -> List[TermCount]:
        return [TermCount(**item) for item in state.corpus.snapshot.categories()]

    @app.get("/api/categories/{name}", response_model=List[DocumentSummary])
    def list_category(name: str) -> List[DocumentSummary]:
        return [DocumentSummary.from_document(doc) for doc in state.corpus.in_category(name)]

    @app.get("/api/tags", response_model=List[TermCount])
    def list_tags() -> List[TermCount]:
        return [TermCount(**item) for item in state.corpus.snapshot.tags()]

    @app.get("/api/tags/{tag}", response_model=List[DocumentSummary])
    def list_tag(tag: str) -> List[DocumentSummary]:
        return [DocumentSummary.from_document(doc) for doc in state.corpus.with_tag(tag)]

    @app.get("/api/warnings", response_model=List[IngestWarning])
    def list_warnings() -> List[IngestWarning]:
        return [IngestWarning.from_error(error) for error in state.warnings]

    @app.post("/api/reload")
    def reload_corpus() -> Dict[str, object]:
        """Rebuild the corpus from the content directory."""
        report = state.load()
        return report.to_stats()

    @app.post("/api/changes")
    def apply_changes(payload: ChangePayload) -> Dict[str, object]:
        """Re-read changed files through the single-writer update queue."""
        root = content_dir.resolve()
        paths = []
        for raw_path in payload.paths:
            path = Path(raw_path)
            if not path.is_absolute():
                path = content_dir / path
            resolved = path.resolve()
            # Reject anything outside the content directory
            if root not in resolved.parents:
                raise HTTPException(status_code=400, detail=f"Path '{raw_path}' is outside the content directory.")
            # Same spelling as the paths found by the initial scan
            paths.append(content_dir / resolved.relative_to(root))

        for path in paths:
            state.updater.submit(path)
        state.updater.join()
        return {"applied": len(paths), "documents": len(state.corpus), "warnings": len(state.warnings)}

    return app


def run_server(host: str = "0.0.0.0", port: int = DEFAULT_PORT, reload: bool = False) -> None:
    import uvicorn

    uvicorn.run(
        "backend.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    run_server(port=DEFAULT_PORT, reload=False)
