#!/usr/bin/env python3
"""
Build or validate the blog corpus index.

This script:
1. Reads every .md/.mdx file under the content directory
2. Splits bundled files into single articles
3. Parses frontmatter and registers valid articles
4. build:    writes the JSON index, listing skipped articles as warnings
   validate: reports every offending file/article, exits 1 on any error

Usage:
    blog-index build
    blog-index build --content-dir content/blog --output output/index.json
    blog-index validate --content-dir content/blog
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from corpus.builder import BuildReport, CorpusBuilder
from corpus.splitter import ARTICLE_SEPARATOR

BASE_DIR = Path.cwd()
CONTENT_DIR = Path(os.environ.get("CONTENT_DIR", BASE_DIR / "content" / "blog"))
INDEX_FILE = Path(os.environ.get("INDEX_FILE", BASE_DIR / "output" / "index.json"))
INGEST_WORKERS = int(os.environ.get("INGEST_WORKERS", "4"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog-index",
        description="Build or validate the blog corpus index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Build the index from content/blog/
    blog-index build

    # Build into a custom location
    blog-index build --output site/data/index.json

    # Check every article, exit non-zero on any error
    blog-index validate
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--content-dir",
        type=Path,
        default=CONTENT_DIR,
        help=f"Directory holding the article files (default: {CONTENT_DIR})"
    )
    common.add_argument(
        "--separator",
        default=ARTICLE_SEPARATOR,
        help=f"Marker line between bundled articles (default: {ARTICLE_SEPARATOR})"
    )
    common.add_argument(
        "--workers",
        type=int,
        default=INGEST_WORKERS,
        help=f"Number of parsing threads (default: {INGEST_WORKERS})"
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", parents=[common], help="Parse the corpus and write the JSON index")
    build.add_argument(
        "--output",
        type=Path,
        default=INDEX_FILE,
        help=f"Index file to write (default: {INDEX_FILE})"
    )

    subparsers.add_parser("validate", parents=[common], help="Parse the corpus and report every error")

    return parser


def _print_errors(report: BuildReport, marker: str) -> None:
    for error in report.errors:
        print(f"  {marker} {error.describe()}")


def run_build(args: argparse.Namespace) -> int:
    builder = CorpusBuilder(args.content_dir, separator=args.separator, workers=args.workers)
    report = builder.build()
    output = builder.export_index(report, args.output)
    stats = report.to_stats()

    print(f"\n✓ Indexed {stats['documents_count']} article(s) from {stats['files_scanned']} file(s)")
    if args.verbose:
        print(f"    By Category: {stats['by_category']}")

    if report.errors:
        print(f"\n⚠ Skipped with {len(report.errors)} warning(s):")
        _print_errors(report, "⚠")

    print(f"\nIndex written to: {output}")
    return 0


def run_validate(args: argparse.Namespace) -> int:
    builder = CorpusBuilder(args.content_dir, separator=args.separator, workers=args.workers)
    report = builder.build()
    stats = report.to_stats()

    if report.ok:
        print(f"\n✓ {stats['documents_count']} article(s) in {stats['files_scanned']} file(s) are valid")
        return 0

    print(f"\n✗ Found {len(report.errors)} error(s) in {stats['files_scanned']} file(s):")
    _print_errors(report, "✗")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    print("\n" + "=" * 70)
    print("Blog Corpus Index")
    print("=" * 70)
    print(f"Input: {args.content_dir}")

    try:
        if args.command == "build":
            return run_build(args)
        return run_validate(args)
    except FileNotFoundError as e:
        print(f"\n✗ Error: {e}")
        return 1
    except OSError as e:
        print(f"\n✗ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
