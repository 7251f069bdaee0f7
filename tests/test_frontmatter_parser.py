"""Tests for frontmatter parsing and serialization."""

import datetime

import pytest

from corpus.document import Document
from corpus.frontmatter_parser import (
    FrontmatterError,
    InvalidFieldError,
    MissingFrontmatterError,
    UnterminatedFrontmatterError,
    parse_document,
    serialize_document,
    split_frontmatter,
)

from .conftest import article_text, make_document

FULL_ARTICLE = """---
title: AWS Lambda Cold Starts
description: What happens before your handler runs
date: 2025-03-07
category: AWS
tags:
  - lambda
  - serverless
  - lambda
featured: true
affiliateSection: aws-books
coverImage: /images/lambda.png
---
# AWS Lambda Cold Starts

Body text.
"""


class TestParseDocument:
    def test_parses_all_fields(self):
        doc = parse_document(FULL_ARTICLE)
        assert doc.id == "aws-lambda-cold-starts"
        assert doc.title == "AWS Lambda Cold Starts"
        assert doc.description == "What happens before your handler runs"
        assert doc.date == datetime.date(2025, 3, 7)
        assert doc.category == "AWS"
        assert doc.tags == frozenset({"lambda", "serverless"})
        assert doc.featured is True
        assert doc.affiliate_section == "aws-books"
        assert doc.cover_image == "/images/lambda.png"
        assert doc.body == "# AWS Lambda Cold Starts\n\nBody text.\n"

    def test_optional_fields_default(self):
        doc = parse_document(article_text("Plain Article", tags=["x"]))
        assert doc.featured is False
        assert doc.affiliate_section is None
        assert doc.cover_image is None

    def test_missing_tags_is_empty_set(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\n---\nbody"
        assert parse_document(text).tags == frozenset()

    def test_leading_whitespace_is_ignored(self):
        doc = parse_document("\n\n  " + article_text("Indented Start"))
        assert doc.id == "indented-start"

    def test_quoted_date_string(self):
        doc = parse_document(article_text("Quoted", date="'2024-12-31'"))
        assert doc.date == datetime.date(2024, 12, 31)

    def test_open_vocabulary_category(self):
        doc = parse_document(article_text("New Category", category="Platform Engineering"))
        assert doc.category == "Platform Engineering"

    def test_slug_falls_back_to_source_stem(self):
        doc = parse_document(article_text("'!!!'"), source="content/blog/My Post.md")
        assert doc.id == "my-post"

    def test_body_keeps_later_horizontal_rules(self):
        text = article_text("Rules", body="intro\n\n---\n\nmore\n")
        assert parse_document(text).body == "intro\n\n---\n\nmore\n"

    def test_crlf_line_endings(self):
        text = article_text("Windows File").replace("\n", "\r\n")
        doc = parse_document(text)
        assert doc.title == "Windows File"
        assert doc.date == datetime.date(2025, 3, 7)


class TestParseErrors:
    def test_missing_frontmatter(self):
        with pytest.raises(MissingFrontmatterError):
            parse_document("# Just markdown\n\nNo metadata here.")

    def test_unterminated_frontmatter(self):
        with pytest.raises(UnterminatedFrontmatterError):
            parse_document("---\ntitle: Open\ndate: 2025-01-01\n\n# Body")

    def test_only_opening_marker(self):
        with pytest.raises(UnterminatedFrontmatterError):
            parse_document("---")

    @pytest.mark.parametrize("date", ["2025-13-01", "2025-02-30", "March 7, 2025", "07/03/2025", "2025-03-07T10:00:00"])
    def test_invalid_date(self, date):
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_document(article_text("Bad Date", date=date))
        assert exc_info.value.field == "date"

    def test_tag_items_keep_their_spelling(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\ntags: [on, no, 3.10, 1e3, 'x']\n---\n"
        assert parse_document(text).tags == frozenset({"on", "no", "3.10", "1e3", "x"})

    def test_block_tag_items_keep_their_spelling(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\ntags:\n  - yes\n  - 007\n---\n"
        assert parse_document(text).tags == frozenset({"yes", "007"})

    def test_other_fields_still_resolve_scalars(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\ntags: [on]\nfeatured: yes\n---\n"
        assert parse_document(text).featured is True

    def test_tags_not_a_list(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\ntags: lambda\n---\n"
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_document(text)
        assert exc_info.value.field == "tags"

    @pytest.mark.parametrize("field", ["title", "description", "category", "date"])
    def test_missing_required_field(self, field):
        fields = {"title": "T", "description": "D", "date": "2025-01-01", "category": "C"}
        del fields[field]
        block = "\n".join(f"{key}: {value}" for key, value in fields.items())
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_document(f"---\n{block}\n---\nbody")
        assert exc_info.value.field == field

    def test_empty_title(self):
        with pytest.raises(InvalidFieldError):
            parse_document("---\ntitle: '  '\ndescription: D\ndate: 2025-01-01\ncategory: C\n---\n")

    def test_invalid_yaml(self):
        with pytest.raises(InvalidFieldError):
            parse_document("---\ntitle: [unclosed\n---\nbody")

    def test_non_mapping_block(self):
        with pytest.raises(InvalidFieldError):
            parse_document("---\n- just\n- a list\n---\nbody")

    def test_featured_must_be_boolean(self):
        text = "---\ntitle: T\ndescription: D\ndate: 2025-01-01\ncategory: C\nfeatured: maybe\n---\n"
        with pytest.raises(InvalidFieldError):
            parse_document(text)

    def test_errors_share_base_class(self):
        for error in (MissingFrontmatterError, UnterminatedFrontmatterError, InvalidFieldError):
            assert issubclass(error, FrontmatterError)
            assert issubclass(error, ValueError)


class TestSplitFrontmatter:
    def test_returns_block_and_body(self):
        block, body = split_frontmatter("---\na: 1\n---\nbody\n")
        assert block == "a: 1\n"
        assert body == "body\n"


class TestSerializeDocument:
    def test_round_trip_parsed_article(self):
        doc = parse_document(FULL_ARTICLE)
        assert parse_document(serialize_document(doc)) == doc

    @pytest.mark.parametrize(
        "doc",
        [
            make_document("Kafka Partitions", tags=["kafka", "scaling"], category="Messaging"),
            make_document("No Tags At All", body=""),
            make_document("Featured: With Colon", featured=True, body="---\nnot frontmatter\n"),
            make_document("Tricky Tags", tags=["true", "2025", "null", "a: b"]),
        ],
    )
    def test_round_trip(self, doc):
        assert parse_document(serialize_document(doc)) == doc

    def test_round_trip_padded_fields(self):
        doc = Document(
            id="padded-title", title="  Padded Title ", description="a\n\n---\n", date=datetime.date(2025, 1, 1),
            category=" AWS", tags=[" lambda "], body="Body",
        )
        assert parse_document(serialize_document(doc)) == doc

    def test_round_trip_pass_through_fields(self):
        doc = parse_document(FULL_ARTICLE)
        text = serialize_document(doc)
        assert "affiliateSection: aws-books" in text
        assert parse_document(text).cover_image == "/images/lambda.png"
