#!/usr/bin/env python3
"""
Upload a local file to the configured Backblaze B2 bucket.

Credentials and bucket are read from the environment / .env
(B2_APPLICATION_KEY_ID, B2_APPLICATION_KEY, B2_BUCKET_NAME).

Usage:
    uv run python app/scripts/upload_file.py ./photo.png
    uv run python app/scripts/upload_file.py ./notes.bin --content-type application/pdf
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from app.core.config import get_settings
from app.core.errors import B2Error
from app.schemas.b2 import Credentials, UploadOutcome, UploadRequest
from app.services.b2 import B2UploadPipeline


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload a file to Backblaze B2",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("source", help="Path to the file to upload")
    parser.add_argument(
        "--content-type",
        default=None,
        help="Content type to declare. Guessed from the file extension when omitted.",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not print progress")
    return parser.parse_args(argv)


def _print_progress(percent: int) -> None:
    print(f"  progress: {percent}%")


async def run_upload(pipeline: B2UploadPipeline, request: UploadRequest, quiet: bool = False) -> UploadOutcome:
    return await pipeline.upload_file(request, on_progress=None if quiet else _print_progress)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    source_path = Path(args.source).expanduser().resolve()
    if not source_path.is_file():
        print(f"Error: file not found: {source_path}", file=sys.stderr)
        return 1

    settings = get_settings()
    if not settings.b2_configured():
        print("Error: B2_APPLICATION_KEY_ID, B2_APPLICATION_KEY and B2_BUCKET_NAME must be set", file=sys.stderr)
        return 1

    content = source_path.read_bytes()
    content_type = args.content_type or mimetypes.guess_type(source_path.name)[0]
    request = UploadRequest(content=content, original_name=source_path.name, content_type=content_type)

    pipeline = B2UploadPipeline(
        Credentials(
            application_key_id=settings.b2_application_key_id,
            application_key=settings.b2_application_key,
            bucket_name=settings.b2_bucket_name,
        ),
        auth_url=settings.b2_auth_url,
        info_author=settings.b2_info_author,
    )

    print(f"Uploading {source_path.name} ({len(content):,} bytes) to bucket {settings.b2_bucket_name}...")
    try:
        outcome = asyncio.run(run_upload(pipeline, request, quiet=args.quiet))
    except B2Error as e:
        print(f"\nUpload failed: {e.message}", file=sys.stderr)
        if e.status_code is not None:
            print(f"  status: {e.status_code}", file=sys.stderr)
        return 1

    print("\nUpload successful!")
    print(f"  file_name: {outcome.file_name}")
    print(f"  file_url: {outcome.file_url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
