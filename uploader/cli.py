#!/usr/bin/env python3
"""
Command-line front end for the upload orchestrator.

Converts the given JFIF files through a running jfif2jpg proxy and saves the
results: a single image, or converted_images.zip when there are several.

Usage:
    jfif2jpg-upload photo1.jfif photo2.jfif --output ./converted
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from convert.config import get_proxy_url
from convert.utils.logging_config import get_logger, setup_logging

from .models import ItemStatus, SourceFile
from .notifier import Notification
from .orchestrator import UploadOrchestrator

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jfif2jpg-upload",
        description="Convert JFIF images through the jfif2jpg proxy."
    )
    parser.add_argument("files", nargs="+", type=Path, help="JFIF files to convert")
    parser.add_argument("--api-url", default=None,
                        help=f"conversion route (default: {get_proxy_url()})")
    parser.add_argument("--output", "-o", type=Path, default=Path("."),
                        help="directory the results are saved to")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def load_sources(paths: List[Path]) -> tuple:
    sources = []
    unreadable = 0
    for path in paths:
        try:
            sources.append(SourceFile.from_path(path))
        except OSError as e:
            print(f"❌ {path}: {e.strerror or e}")
            unreadable += 1
    return sources, unreadable


def _print_notification(notification: Notification) -> None:
    print(f"  {notification.message}")


async def run(args: argparse.Namespace) -> int:
    sources, unreadable = load_sources(args.files)

    async with UploadOrchestrator(proxy_url=args.api_url) as orchestrator:
        orchestrator.notifier.subscribe(_print_notification)

        orchestrator.add_files(sources)
        await orchestrator.wait()

        failed = unreadable
        for item in orchestrator.items:
            if item.status is ItemStatus.DONE:
                print(f"✅ {item.name} -> {item.result_file_name}")
            else:
                print(f"❌ {item.name}: {item.error_message}")
                failed += 1

        saved = await orchestrator.download_all(args.output)

    if saved is not None:
        print(f"💾 Saved to: {saved}")

    if saved is None or failed:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        setup_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
