"""Shared fixtures for corpus tests."""

import datetime
from pathlib import Path
from typing import Iterable, Optional

import pytest

from corpus import Document, slugify

SEPARATOR = "<!--ARTICLE-->"


def article_text(
    title: str,
    date: str = "2025-03-07",
    category: str = "AWS",
    tags: Iterable[str] = (),
    description: str = "A test article",
    featured: Optional[bool] = None,
    body: str = "# Heading\n\nSome body text.\n",
) -> str:
    lines = [
        "---",
        f"title: {title}",
        f"description: {description}",
        f"date: {date}",
        f"category: {category}",
        f"tags: [{', '.join(tags)}]",
    ]
    if featured is not None:
        lines.append(f"featured: {'true' if featured else 'false'}")
    lines.append("---")
    return "\n".join(lines) + "\n" + body


def make_document(
    title: str,
    date: str = "2025-01-01",
    category: str = "AWS",
    tags: Iterable[str] = (),
    featured: bool = False,
    body: str = "Body",
) -> Document:
    return Document(
        id=slugify(title),
        title=title,
        description=f"About {title}",
        date=datetime.date.fromisoformat(date),
        category=category,
        tags=frozenset(tags),
        featured=featured,
        body=body,
    )


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """Small corpus: one bundled AWS file, one database article, one broken article."""
    blog = tmp_path / "content" / "blog"
    blog.mkdir(parents=True)

    bundled = "\n".join([
        article_text("Lambda Cold Starts", date="2025-03-07", tags=["lambda", "serverless"]),
        SEPARATOR,
        article_text("Lambda Cost Tuning", date="2025-06-28", tags=["lambda", "cost"]),
    ])
    (blog / "aws-lambda.md").write_text(bundled, encoding="utf-8")

    (blog / "postgres-indexes.md").write_text(
        article_text("Postgres Index Types", date="2025-05-01", category="Databases", tags=["postgres"]),
        encoding="utf-8",
    )

    (blog / "broken.md").write_text(
        "---\ntitle: Never Closed\ndescription: Missing marker\ndate: 2025-02-02\ncategory: AWS\n\n# Body\n",
        encoding="utf-8",
    )
    return blog
