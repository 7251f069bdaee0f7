"""
Multi-document splitter.

Some source files bundle several articles. Articles are separated by a line
holding only the separator marker:

---
title: First article
...
---
Body of the first article

<!--ARTICLE-->

---
title: Second article
...
"""

from __future__ import annotations

import os
import re
from typing import Iterable, Iterator

ARTICLE_SEPARATOR = os.environ.get("ARTICLE_SEPARATOR", "<!--ARTICLE-->")


class DocumentChunks(Iterable[str]):
    """Lazy, restartable view over the articles bundled in one file.

    Every iteration re-scans the text, so the same input always yields the
    same chunks.
    """

    def __init__(self, text: str, separator: str = ARTICLE_SEPARATOR):
        if not separator.strip():
            raise ValueError("Separator must not be blank")
        self.text = text
        self.separator = separator.strip()
        self._pattern = re.compile(
            r'^[ \t]*' + re.escape(self.separator) + r'[ \t]*\r?$',
            re.MULTILINE,
        )

    def __iter__(self) -> Iterator[str]:
        start = 0
        for match in self._pattern.finditer(self.text):
            segment = self.text[start:match.start()]
            start = match.end()
            if segment.strip():
                yield segment.strip('\r\n')
        tail = self.text[start:]
        if tail.strip():
            yield tail.strip('\r\n')

    def __repr__(self) -> str:
        return f"DocumentChunks(separator={self.separator!r}, length={len(self.text)})"


def split_documents(text: str, separator: str = ARTICLE_SEPARATOR) -> DocumentChunks:
    """Split raw file text into raw article chunks.

    Args:
        text: Full file content
        separator: Marker line between articles

    Returns:
        Restartable iterable of article strings. Empty segments are dropped;
        text without any separator is a single article.

    Example:
        >>> chunks = split_documents("---\\na: 1\\n---\\nA\\n<!--ARTICLE-->\\n---\\nb: 2\\n---\\nB")
        >>> len(list(chunks))
        2
    """
    return DocumentChunks(text, separator)
