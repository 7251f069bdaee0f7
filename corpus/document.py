"""
Document model for blog articles.

A Document is one article: its frontmatter fields plus the raw markdown body.
Derived values (excerpt, reading time, table of contents) are computed from
the body on demand and never take part in equality.
"""

from __future__ import annotations

import datetime
import math
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

EXCERPT_LENGTH = 220
WORDS_PER_MINUTE = 200


def slugify(text: str) -> str:
    """Derive a URL-safe id from a title.

    Lowercases the text and collapses every run of non-alphanumeric
    characters into a single hyphen.

    Example:
        >>> slugify("Kafka vs. RabbitMQ: Which One?")
        'kafka-vs-rabbitmq-which-one'
    """
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


@dataclass(frozen=True)
class Document:
    """Represents a parsed blog article."""
    id: str
    title: str
    description: str
    date: datetime.date
    category: str
    tags: FrozenSet[str] = field(default_factory=frozenset)
    featured: bool = False
    affiliate_section: Optional[str] = None
    cover_image: Optional[str] = None
    body: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("Document id must not be empty")
        # Same normalization the frontmatter parser applies
        for name in ('title', 'description', 'category'):
            value = getattr(self, name)
            if isinstance(value, str) and value != value.strip():
                object.__setattr__(self, name, value.strip())
        tags = frozenset(tag.strip() for tag in self.tags if tag.strip())
        if tags != self.tags:
            object.__setattr__(self, 'tags', tags)

    @property
    def excerpt(self) -> str:
        return extract_excerpt(self.body)

    @property
    def word_count(self) -> int:
        return len(self.body.split())

    @property
    def reading_time(self) -> str:
        minutes = max(1, math.ceil(self.word_count / WORDS_PER_MINUTE))
        return f"{minutes} min read"

    @property
    def table_of_contents(self) -> List[Dict[str, object]]:
        return extract_table_of_contents(self.body)

    def to_dict(self, include_body: bool = False) -> Dict:
        """Convert to a JSON-friendly dictionary.

        Args:
            include_body: Whether to include the raw markdown body

        Returns:
            Dictionary with frontmatter fields and derived values
        """
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "category": self.category,
            "tags": sorted(self.tags),
            "featured": self.featured,
            "affiliateSection": self.affiliate_section,
            "coverImage": self.cover_image,
            "excerpt": self.excerpt,
            "readingTime": self.reading_time,
            "wordCount": self.word_count,
            "tableOfContents": self.table_of_contents,
        }
        if include_body:
            data["body"] = self.body
        return data


def extract_excerpt(body: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Build a plain-text excerpt from markdown.

    Code blocks, heading markers, emphasis and link targets are dropped and
    whitespace is collapsed.
    """
    text = re.sub(r'```.*?```', '', body, flags=re.DOTALL)
    text = re.sub(r'`[^`]*`', '', text)
    text = re.sub(r'!\[[^\]]*\]\([^)]+\)', '', text)
    text = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', text)
    text = re.sub(r'^#{1,6}\s+', '', text, flags=re.MULTILINE)
    text = re.sub(r'\*\*|__|\*|~~', '', text)
    text = ' '.join(text.split())

    if len(text) > max_length:
        return text[:max_length].rstrip() + '…'
    return text


def extract_table_of_contents(body: str) -> List[Dict[str, object]]:
    """Extract level 2 and 3 headings with their anchor ids.

    Headings inside fenced code blocks are ignored. Repeated anchors get a
    numeric suffix.
    """
    toc = []
    anchor_counts: Dict[str, int] = {}
    in_code = False

    for line in body.split('\n'):
        if line.lstrip().startswith('```'):
            in_code = not in_code
            continue
        if in_code:
            continue

        match = re.match(r'^(#{2,3})\s+(.+?)\s*#*\s*$', line)
        if not match:
            continue

        level = len(match.group(1))
        text = match.group(2).strip()
        anchor = re.sub(r'[^a-z0-9\s-]', '', text.lower())
        anchor = re.sub(r'\s+', '-', anchor.strip())
        anchor = re.sub(r'-+', '-', anchor).strip('-')

        if anchor in anchor_counts:
            anchor_counts[anchor] += 1
            anchor = f"{anchor}-{anchor_counts[anchor]}"
        else:
            anchor_counts[anchor] = 0

        toc.append({"id": anchor, "text": text, "level": level})

    return toc
