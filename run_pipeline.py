#!/usr/bin/env python3
"""
End-to-end pipeline runner for the blog corpus index.

WORKFLOW:
1. Validate every article (reports all errors; continues unless --strict)
2. Build the JSON index from the valid articles
3. Optionally start the query API

Usage:
    python run_pipeline.py [options]

Options:
    --content-dir DIR   Directory holding the article files
    --output FILE       Index file to write
    --skip-validate     Skip the validation step
    --strict            Stop when validation finds errors
    --start-server      Start the query API after the index is built

Examples:
    # Validate and build
    python run_pipeline.py

    # Refuse to build a partial index
    python run_pipeline.py --strict

    # Build and serve
    python run_pipeline.py --start-server
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional


BASE_DIR = Path(__file__).resolve().parent
CONTENT_DIR = Path(os.environ.get("CONTENT_DIR", BASE_DIR / "content" / "blog"))
INDEX_FILE = Path(os.environ.get("INDEX_FILE", BASE_DIR / "output" / "index.json"))
DEFAULT_PORT = int(os.environ.get("PORT", "8800"))


def run_command(cmd: List[str], description: str, cwd: Optional[Path] = None) -> bool:
    """Run a command and return success status."""
    print(f"\n{'='*70}")
    print(f"STEP: {description}")
    print(f"{'='*70}")
    print(f"Running: {' '.join(str(c) for c in cmd)}")
    print()

    try:
        subprocess.run(cmd, cwd=cwd or BASE_DIR, check=True)
        print(f"\n✓ {description} completed successfully")
        return True
    except subprocess.CalledProcessError as exc:
        print(f"\n✗ {description} failed with exit code {exc.returncode}")
        return False
    except FileNotFoundError:
        print(f"\n✗ Command not found: {cmd[0]}")
        return False


def count_files(directory: Path) -> int:
    """Count article files in directory."""
    if not directory.exists():
        return 0
    return sum(1 for path in directory.rglob("*") if path.suffix in (".md", ".mdx"))


def main():
    parser = argparse.ArgumentParser(
        description="Run the blog corpus pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--content-dir", type=Path, default=CONTENT_DIR, help="Directory holding the article files")
    parser.add_argument("--output", type=Path, default=INDEX_FILE, help="Index file to write")
    parser.add_argument("--skip-validate", action="store_true", help="Skip the validation step")
    parser.add_argument("--strict", action="store_true", help="Stop when validation finds errors")
    parser.add_argument("--start-server", action="store_true", help="Start the query API after building")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port for the query API")
    args = parser.parse_args()

    print("\n" + "="*70)
    print("Blog Corpus Pipeline Runner")
    print("="*70)

    file_count = count_files(args.content_dir)
    if file_count == 0:
        print(f"\n✗ No .md/.mdx files found in {args.content_dir}")
        return 1
    print(f"✓ Found {file_count} article file(s) in {args.content_dir}")

    index_cmd = [sys.executable, "-m", "ingress.build_index"]

    # Step 1: Validate
    if not args.skip_validate:
        valid = run_command(
            index_cmd + ["validate", "--content-dir", str(args.content_dir)],
            "Validate articles",
        )
        if not valid:
            if args.strict:
                print("\n✗ Validation failed and --strict is set; index not built")
                return 1
            print("\n⚠ Validation found errors; invalid articles will be skipped")

    # Step 2: Build
    if not run_command(
        index_cmd + ["build", "--content-dir", str(args.content_dir), "--output", str(args.output)],
        "Build corpus index",
    ):
        return 1

    print("\n" + "="*70)
    print("PIPELINE COMPLETE!")
    print("="*70)
    print(f"  • Article files: {file_count}")
    print(f"  • Index: {args.output}")

    # Step 3: Start server (optional)
    if args.start_server:
        print("\n" + "="*70)
        print("Starting Query API")
        print("="*70)
        print(f"\nThe server will run at http://localhost:{args.port}")
        print("Press Ctrl+C to stop\n")

        env = dict(os.environ, CONTENT_DIR=str(args.content_dir))
        cmd = [
            sys.executable, "-m", "uvicorn", "backend.app:create_app",
            "--factory", "--host", "0.0.0.0", "--port", str(args.port),
        ]
        try:
            subprocess.run(cmd, cwd=BASE_DIR, env=env, check=True)
        except KeyboardInterrupt:
            print("\n\nServer stopped by user")
        except subprocess.CalledProcessError as exc:
            print(f"\n✗ Server failed with exit code {exc.returncode}")
            return 1
    else:
        print("\nTo start the query API, run:")
        print("  python -m backend.app")
        print("\nOr run this script with --start-server flag")

    return 0


if __name__ == "__main__":
    sys.exit(main())
