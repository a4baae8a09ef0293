"""Command-line interface for extracting text from an image via the API."""
from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
import time
from pathlib import Path

from ocr_service.client.client import ExtractionClient, ProgressStage
from ocr_service.confidence.confidence import confidence_label
from ocr_service.core.config import settings
from ocr_service.core.exceptions import ExtractionClientError
from ocr_service.core.logging import configure_logging
from ocr_service.extraction.result import ExtractionResult
from ocr_service.imaging.normalizer import UploadedImage

# mimetypes only learned .webp in Python 3.11
_EXTRA_TYPES = {".webp": "image/webp"}


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Extract text from an image with a hosted vision model")
    parser.add_argument("image", help="Path to a PNG/JPG/JPEG/WebP image")
    parser.add_argument("--api-url", default=settings.api_url, help="Base URL of the extraction API")
    parser.add_argument("--no-normalize", action="store_true", help="Upload the original bytes unchanged")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--save", action="store_true", help="Write the text to extracted-text-<timestamp>.txt")
    target.add_argument("--output", help="Write the text to this file")
    return parser.parse_args(argv)


def load_image(path: str | Path) -> UploadedImage:
    """Read an image file, rejecting anything that is not an image type."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Image path not found: {path}")
    mime_type, _ = mimetypes.guess_type(path.name)
    mime_type = mime_type or _EXTRA_TYPES.get(path.suffix.lower())
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Invalid file type: {path.name}. Please select a PNG/JPG/JPEG/WebP image.")
    return UploadedImage(data=path.read_bytes(), mime_type=mime_type, filename=path.name)


def download_name(now: float | None = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"extracted-text-{millis}.txt"


def _print_progress(stage: ProgressStage) -> None:
    if stage is not ProgressStage.IDLE:
        print(f"[{stage.percent:3d}%] {stage.message}", file=sys.stderr)


async def run(args: argparse.Namespace) -> ExtractionResult:
    image = load_image(args.image)
    async with ExtractionClient(args.api_url, normalize=not args.no_normalize) as client:
        return await client.extract(image, on_progress=_print_progress)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI application."""
    configure_logging("WARNING", stream=sys.stderr)
    args = parse_arguments(argv)
    try:
        result = asyncio.run(run(args))
    except (OSError, ValueError, ExtractionClientError) as exc:
        print(f"Extraction failed: {exc}", file=sys.stderr)
        return 1

    if not result.success:
        detail = f": {result.details}" if result.details else ""
        print(f"{result.error}{detail}", file=sys.stderr)
        return 1

    score = result.confidence or 0.0
    print(f"Confidence: {round(score * 100)}% ({confidence_label(score)})", file=sys.stderr)

    destination = args.output or (download_name() if args.save else None)
    if destination:
        Path(destination).write_text(result.text, encoding="utf-8")
        print(f"Saved text to {destination}", file=sys.stderr)
    else:
        print(result.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
