"""
Frontmatter parser for blog articles.

Parses the YAML block at the top of a markdown article and turns it into a
Document.

Format:
---
title: AWS Lambda Cold Starts
description: What actually happens before your handler runs
date: 2025-03-07
category: AWS
tags: [lambda, serverless]
featured: true
affiliateSection: aws-books
---
# Article body
"""

from __future__ import annotations

import datetime
import re
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from .document import Document, slugify

FRONTMATTER_MARKER = "---"

_CLOSING_MARKER_RE = re.compile(r'^---[ \t]*\r?$', re.MULTILINE)

_RETAGGED_TAG_SCALARS = (
    'tag:yaml.org,2002:bool',
    'tag:yaml.org,2002:int',
    'tag:yaml.org,2002:float',
)


class _FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as strings and tag items as written."""

    def construct_mapping(self, node, deep=False):
        # Plain scalars under ``tags`` would otherwise resolve to bool, int or float
        if isinstance(node, yaml.MappingNode):
            for key_node, value_node in node.value:
                if (isinstance(key_node, yaml.ScalarNode) and key_node.value == 'tags'
                        and isinstance(value_node, yaml.SequenceNode)):
                    for item in value_node.value:
                        if isinstance(item, yaml.ScalarNode) and item.tag in _RETAGGED_TAG_SCALARS:
                            item.tag = 'tag:yaml.org,2002:str'
        return super().construct_mapping(node, deep=deep)


_FrontmatterLoader.yaml_implicit_resolvers = {
    first_char: [
        (tag, regexp) for tag, regexp in resolvers
        if tag != 'tag:yaml.org,2002:timestamp'
    ]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class FrontmatterError(ValueError):
    """Exception raised when an article's frontmatter is invalid."""
    pass


class MissingFrontmatterError(FrontmatterError):
    """The document does not start with a frontmatter marker line."""
    pass


class UnterminatedFrontmatterError(FrontmatterError):
    """An opening marker was found but no closing marker follows."""
    pass


class InvalidFieldError(FrontmatterError):
    """A frontmatter field is missing, empty or has the wrong shape."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


def split_frontmatter(text: str) -> tuple[str, str]:
    """Split raw text into the frontmatter block and the body.

    Args:
        text: Raw document text

    Returns:
        Tuple of (frontmatter text, body text)

    Raises:
        MissingFrontmatterError: If the text does not open with ``---``
        UnterminatedFrontmatterError: If no closing ``---`` line follows
    """
    content = text.lstrip()
    first_line, newline, rest = content.partition('\n')

    if first_line.rstrip() != FRONTMATTER_MARKER:
        raise MissingFrontmatterError("Document does not start with a '---' frontmatter marker")

    if not newline:
        raise UnterminatedFrontmatterError("Frontmatter block is never closed")

    match = _CLOSING_MARKER_RE.search(rest)
    if not match:
        raise UnterminatedFrontmatterError("Frontmatter block is never closed")

    block = rest[:match.start()]
    body = rest[match.end():]
    # Only the line break that ends the closing marker belongs to the block
    if body.startswith('\n'):
        body = body[1:]

    return block, body


def parse_frontmatter(block: str) -> Dict:
    """Parse the YAML frontmatter block into a mapping.

    Raises:
        InvalidFieldError: If the block is not valid YAML or not a mapping
    """
    try:
        data = yaml.load(block, Loader=_FrontmatterLoader)
    except yaml.YAMLError as exc:
        raise InvalidFieldError("frontmatter", f"invalid YAML ({exc})") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidFieldError("frontmatter", f"must be a key-value mapping, got {type(data).__name__}")
    return data


def parse_document(text: str, source: Optional[Union[str, Path]] = None) -> Document:
    """Parse a single raw article into a Document.

    Args:
        text: Raw article text (frontmatter + markdown body)
        source: Path of the file the article came from; its stem is the
            slug fallback when the title has no alphanumeric characters

    Returns:
        Parsed Document

    Raises:
        MissingFrontmatterError: No opening marker at the start of the text
        UnterminatedFrontmatterError: Opening marker without a closing one
        InvalidFieldError: A field is missing or malformed

    Example:
        >>> doc = parse_document('''---
        ... title: Kafka Partitions
        ... description: How partitions scale consumers
        ... date: 2025-06-28
        ... category: Messaging
        ... tags: [kafka]
        ... ---
        ... # Kafka Partitions
        ... ''')
        >>> doc.id
        'kafka-partitions'
    """
    block, body = split_frontmatter(text)
    metadata = parse_frontmatter(block)

    title = _required_string(metadata, 'title')
    description = _required_string(metadata, 'description')
    category = _required_string(metadata, 'category')
    date = _parse_date(metadata.get('date'))
    tags = _parse_tags(metadata.get('tags'))
    featured = _parse_featured(metadata.get('featured'))
    affiliate_section = _optional_string(metadata, 'affiliateSection')
    cover_image = _optional_string(metadata, 'coverImage')

    doc_id = slugify(title)
    if not doc_id and source is not None:
        doc_id = slugify(Path(source).stem)
    if not doc_id:
        raise InvalidFieldError('title', f"cannot derive an id from {title!r}")

    return Document(
        id=doc_id,
        title=title,
        description=description,
        date=date,
        category=category,
        tags=tags,
        featured=featured,
        affiliate_section=affiliate_section,
        cover_image=cover_image,
        body=body,
    )


def serialize_document(document: Document) -> str:
    """Render a Document back into frontmatter + body text.

    ``parse_document(serialize_document(doc)) == doc`` holds for every
    Document produced by ``parse_document``.
    """
    metadata = {
        'title': document.title,
        'description': document.description,
        'date': document.date.isoformat(),
        'category': document.category,
        'tags': sorted(document.tags),
        'featured': document.featured,
    }
    if document.affiliate_section is not None:
        metadata['affiliateSection'] = document.affiliate_section
    if document.cover_image is not None:
        metadata['coverImage'] = document.cover_image

    block = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{FRONTMATTER_MARKER}\n{block}{FRONTMATTER_MARKER}\n{document.body}"


def _required_string(metadata: Dict, field: str) -> str:
    if field not in metadata or metadata[field] is None:
        raise InvalidFieldError(field, "missing required field")
    value = metadata[field]
    if not isinstance(value, str):
        raise InvalidFieldError(field, f"must be a string, got {type(value).__name__}")
    value = value.strip()
    if not value:
        raise InvalidFieldError(field, "must not be empty")
    return value


def _optional_string(metadata: Dict, field: str) -> Optional[str]:
    value = metadata.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFieldError(field, f"must be a string, got {type(value).__name__}")
    return value


def _parse_date(value) -> datetime.date:
    if value is None:
        raise InvalidFieldError('date', "missing required field")

    if isinstance(value, str) and re.fullmatch(r'\d{4}-\d{2}-\d{2}', value.strip()):
        try:
            return datetime.date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidFieldError('date', f"invalid calendar date {value!r}") from exc

    raise InvalidFieldError('date', f"expected YYYY-MM-DD, got {value!r}")


def _parse_tags(value) -> frozenset:
    if value is None:
        return frozenset()
    if not isinstance(value, list):
        raise InvalidFieldError('tags', f"must be a list, got {type(value).__name__}")

    tags = set()
    for item in value:
        if item is None or isinstance(item, (list, dict)):
            raise InvalidFieldError('tags', f"invalid tag {item!r}")
        tag = str(item).strip()
        if tag:
            tags.add(tag)
    return frozenset(tags)


def _parse_featured(value) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidFieldError('featured', f"must be true or false, got {value!r}")
    return value
