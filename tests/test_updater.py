"""Tests for CorpusUpdater."""

import logging
import threading
from pathlib import Path

import pytest

from corpus.builder import CorpusBuilder
from corpus.updater import CorpusUpdater

from .conftest import SEPARATOR, article_text


@pytest.fixture
def setup(content_dir: Path):
    builder = CorpusBuilder(content_dir, separator=SEPARATOR)
    corpus = builder.build().corpus
    reported = []
    updater = CorpusUpdater(builder, corpus, on_errors=lambda path, errors: reported.append((path, errors)))
    updater.start()
    yield content_dir, corpus, updater, reported
    updater.stop()


class TestCorpusUpdater:
    def test_new_file_is_added(self, setup):
        content_dir, corpus, updater, _ = setup
        path = content_dir / "kafka.md"
        path.write_text(article_text("Kafka Partitions", category="Messaging", tags=["kafka"]), encoding="utf-8")

        updater.submit(path)
        updater.join()

        assert corpus.get("kafka-partitions") is not None
        assert corpus.snapshot.documents_in_category("Messaging") == ("kafka-partitions",)

    def test_modified_bundle_replaces_its_documents(self, setup):
        content_dir, corpus, updater, _ = setup
        path = content_dir / "aws-lambda.md"
        path.write_text(
            article_text("Lambda Cold Starts", date="2025-03-07", tags=["lambda", "snapstart"]),
            encoding="utf-8",
        )

        updater.submit(path)
        updater.join()

        assert corpus.get("lambda-cost-tuning") is None
        assert corpus.get("lambda-cold-starts").tags == frozenset({"lambda", "snapstart"})
        assert corpus.snapshot.documents_with_tag("cost") == ()

    def test_deleted_file_removes_documents(self, setup):
        content_dir, corpus, updater, _ = setup
        path = content_dir / "postgres-indexes.md"
        path.unlink()

        updater.submit(path)
        updater.join()

        assert corpus.get("postgres-index-types") is None
        assert corpus.snapshot.documents_in_category("Databases") == ()

    def test_fixed_file_is_picked_up_and_errors_reported(self, setup):
        content_dir, corpus, updater, reported = setup
        broken = content_dir / "broken.md"

        updater.submit(broken)
        updater.join()
        assert reported and reported[-1][0] == broken

        broken.write_text(article_text("Never Closed"), encoding="utf-8")
        updater.submit(broken)
        updater.join()
        assert corpus.get("never-closed") is not None

    def test_changes_are_applied_in_order(self, setup):
        content_dir, corpus, updater, _ = setup
        path = content_dir / "draft.md"
        path.write_text(article_text("Draft Post"), encoding="utf-8")
        updater.submit(path)
        updater.join()

        path.unlink()
        updater.submit(path)
        updater.join()

        assert corpus.get("draft-post") is None

    def test_stop_is_idempotent(self, setup):
        _, _, updater, _ = setup
        updater.stop()
        updater.stop()
        assert not updater.running

    def test_stop_warns_when_worker_is_still_busy(self, content_dir: Path, caplog):
        busy = threading.Event()
        release = threading.Event()

        def block(path, errors):
            busy.set()
            release.wait(5)

        builder = CorpusBuilder(content_dir, separator=SEPARATOR)
        updater = CorpusUpdater(builder, builder.build().corpus, on_errors=block)
        updater.start()
        updater.submit(content_dir / "postgres-indexes.md")
        assert busy.wait(5)

        with caplog.at_level(logging.WARNING, logger="corpus.updater"):
            updater.stop(timeout=0.1)
        release.set()

        assert "still busy" in caplog.text
        assert not updater.running


class TestSharedIds:
    @pytest.fixture
    def pair(self, tmp_path: Path):
        first = tmp_path / "a.md"
        second = tmp_path / "b.md"
        first.write_text(article_text("Shared Title", body="from a\n"), encoding="utf-8")
        builder = CorpusBuilder(tmp_path)
        report = builder.build()
        return builder, report, first, second

    def test_new_file_cannot_take_an_owned_id(self, pair):
        builder, report, first, second = pair
        updater = CorpusUpdater(builder, report.corpus)
        second.write_text(article_text("Shared Title", body="from b\n"), encoding="utf-8")

        errors = updater.apply(second)

        assert [(error.error_type, error.position) for error in errors] == [("DuplicateDocumentError", 1)]
        assert report.corpus.get("shared-title").body == "from a\n"
        assert report.corpus.registry.source_of("shared-title") == first

    def test_deleting_the_rejected_file_keeps_the_owner(self, pair):
        builder, report, first, second = pair
        updater = CorpusUpdater(builder, report.corpus)
        second.write_text(article_text("Shared Title", body="from b\n"), encoding="utf-8")
        updater.apply(second)

        second.unlink()
        updater.apply(second)

        assert report.corpus.get("shared-title").body == "from a\n"

    def test_released_id_goes_to_the_waiting_file(self, pair):
        builder, report, first, second = pair
        reported = []
        updater = CorpusUpdater(builder, report.corpus, on_errors=lambda path, errors: reported.append((path, errors)))
        second.write_text(article_text("Shared Title", body="from b\n"), encoding="utf-8")
        updater.apply(second)

        first.unlink()
        updater.apply(first)

        assert report.corpus.get("shared-title").body == "from b\n"
        assert report.corpus.registry.source_of("shared-title") == second
        assert reported == [(second, [])]

    def test_build_time_duplicate_is_restored(self, pair):
        builder, _, first, second = pair
        second.write_text(article_text("Shared Title", body="from b\n"), encoding="utf-8")
        report = builder.build()
        assert report.shadowed == {"shared-title": [first]}
        updater = CorpusUpdater(builder, report.corpus, claimants=report.shadowed)

        second.unlink()
        updater.apply(second)

        assert report.corpus.get("shared-title").body == "from a\n"
