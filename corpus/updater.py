"""
Single-writer update queue for a live corpus.

File-change events from any thread are queued; one daemon worker thread
re-reads each changed file and applies the result to the corpus, so registry
updates never race each other.

Usage:
    updater = CorpusUpdater(builder, corpus)
    updater.start()
    updater.submit(Path("content/blog/kafka.md"))
    updater.join()   # wait until the queue is drained
    updater.stop()
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from .builder import STRUCTURAL_ERROR, CorpusBuilder, DuplicateDocumentError, IngestError
from .index import Corpus

logger = logging.getLogger(__name__)

_STOP = object()


class CorpusUpdater:
    """Apply file changes to a corpus from a single worker thread."""

    def __init__(
        self,
        builder: CorpusBuilder,
        corpus: Corpus,
        on_errors: Optional[Callable[[Path, List[IngestError]], None]] = None,
        claimants: Optional[Dict[str, Iterable[Path]]] = None,
    ):
        """Initialize updater.

        Args:
            builder: Builder used to load changed files
            corpus: Corpus to update
            on_errors: Called with the file and its errors (possibly none)
                after each applied change
            claimants: Files waiting for an id another file owns, such as
                BuildReport.shadowed
        """
        self.builder = builder
        self.corpus = corpus
        self.on_errors = on_errors
        self._claimants: Dict[str, set] = {
            doc_id: {Path(path) for path in paths} for doc_id, paths in (claimants or {}).items()
        }
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="corpus-updater", daemon=True)
        self._thread.start()

    def submit(self, path: Union[str, Path]) -> None:
        """Queue a created, modified or deleted file."""
        self._queue.put(Path(path))

    def join(self) -> None:
        """Block until every queued change has been applied."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"Updater thread still busy after {timeout}s; it exits after its current change")
        self._thread = None

    def apply(self, path: Path) -> List[IngestError]:
        """Reload one file into the corpus.

        A missing file removes its documents. Documents that fail to parse
        are dropped from the corpus until the file is fixed. An id already
        owned by another file stays with that file; this file's article is
        reported as a duplicate and loaded once the id is released.

        Returns:
            Errors found while reloading the file
        """
        if not path.exists():
            self._forget_claims(path)
            removed = self.corpus.replace_source(path, [])
            logger.info(f"Removed {len(removed)} document(s) from deleted file {path}")
            self._release(removed)
            return []

        articles, errors = self.builder.load_articles(path)
        if any(error.kind == STRUCTURAL_ERROR for error in errors):
            # Unreadable file: keep the previous version of its documents
            logger.warning(f"Keeping previous documents for unreadable file {path}")
            return errors

        self._forget_claims(path)
        documents = []
        seen = set()
        for position, document in articles:
            owner = self.corpus.registry.source_of(document.id)
            if document.id in self.corpus and owner != path:
                duplicate = DuplicateDocumentError(document.id, owner, replaced=False)
                errors.append(IngestError.from_exception(path, position, duplicate))
                logger.warning(str(duplicate))
                self._claimants.setdefault(document.id, set()).add(path)
                continue
            if document.id in seen:
                duplicate = DuplicateDocumentError(document.id, path)
                errors.append(IngestError.from_exception(path, position, duplicate))
                logger.warning(str(duplicate))
            seen.add(document.id)
            documents.append(document)

        removed = self.corpus.replace_source(path, documents)
        logger.info(
            f"Reloaded {path}: {len(documents)} document(s), "
            f"{len(removed)} removed, {len(errors)} error(s)"
        )
        self._release(removed)
        return errors

    def _forget_claims(self, path: Path) -> None:
        for doc_id in list(self._claimants):
            self._claimants[doc_id].discard(path)
            if not self._claimants[doc_id]:
                del self._claimants[doc_id]

    def _release(self, document_ids: List[str]) -> None:
        """Reload files that were waiting for one of these ids."""
        waiting = set()
        for doc_id in document_ids:
            waiting.update(self._claimants.pop(doc_id, ()))
        for path in sorted(waiting):
            logger.info(f"Reloading {path} for released id(s)")
            self._process(path)

    def _process(self, path: Path) -> None:
        errors = self.apply(path)
        if self.on_errors is not None:
            self.on_errors(path, errors)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._process(item)
            except Exception:
                logger.exception(f"Failed to apply change for {item}")
            finally:
                self._queue.task_done()
