#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import zipfile
from pathlib import Path
from typing import Optional

from epubmeta.archive import EpubStructureError
from epubmeta.env import log_level, parse_log_level
from epubmeta.epub import read_epub
from epubmeta.models import metadata_to_dict


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print EPUB metadata and table of contents as JSON."
    )
    parser.add_argument("input", help="Input EPUB file path")
    parser.add_argument("--chapter", type=int, help="Print the raw text of the N-th chapter (1-based) instead")
    parser.add_argument("--log-level", help="Logging level (default: $EPUBMETA_LOG_LEVEL or WARNING)")
    return parser.parse_args(argv)


async def run(input_path: Path, chapter: Optional[int]) -> str:
    with await read_epub(input_path) as meta:
        if chapter is None:
            return json.dumps(metadata_to_dict(meta), ensure_ascii=False, indent=2)
        if not 1 <= chapter <= len(meta.toc):
            raise IndexError(f"chapter {chapter} out of range (book has {len(meta.toc)})")
        return await meta.toc[chapter - 1].read()


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    level = parse_log_level(args.log_level, default=log_level())
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        output = asyncio.run(run(input_path, args.chapter))
    except (EpubStructureError, zipfile.BadZipFile, IndexError) as exc:
        print(f"{input_path}: {exc}", file=sys.stderr)
        return 1
    print(output)
    return 0


def entry_point() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
