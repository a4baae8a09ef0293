"""Client-side image normalization before upload.

Caps the larger dimension, converts to luminance grayscale, applies a light
contrast stretch around mid-gray and re-encodes losslessly as PNG. The
transform only shrinks transfer size and mildly sharpens glyph edges; the
server never depends on it.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath

from PIL import Image, ImageOps, UnidentifiedImageError

from ocr_service.core.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

MAX_DIMENSION = 2000
CONTRAST = 1.15
NORMALIZED_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    mime_type: str
    filename: str = "image.png"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    width: int
    height: int
    mime_type: str = NORMALIZED_MIME_TYPE


@dataclass(frozen=True)
class ExtractionRequest:
    """What actually gets sent: the normalized image, or the original on decode failure."""
    image: UploadedImage
    normalized: bool


def scaled_size(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> tuple[int, int]:
    """Fit (width, height) inside max_dimension without upscaling; rounds half up."""
    scale = min(1.0, max_dimension / max(width, height))
    return max(1, int(width * scale + 0.5)), max(1, int(height * scale + 0.5))


def _contrast_table(contrast: float) -> list[int]:
    return [min(255, max(0, round((v - 128) * contrast + 128))) for v in range(256)]


def _flatten(img: Image.Image) -> Image.Image:
    """Composite any transparency onto white so transparent text backgrounds stay light."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        background.alpha_composite(rgba)
        return background.convert("RGB")
    return img


def normalize_image(
    data: bytes,
    *,
    max_dimension: int = MAX_DIMENSION,
    contrast: float = CONTRAST,
) -> NormalizedImage:
    """Downscale, grayscale and contrast-adjust *data*; return it as PNG.

    Raises:
        ImageDecodeError: the bytes are not a decodable raster image.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            img = ImageOps.exif_transpose(source)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Could not decode image: {exc}") from exc

    # Pillow's "L" conversion is ITU-R 601-2 luma: 0.299R + 0.587G + 0.114B
    gray = _flatten(img).convert("L")

    width, height = scaled_size(gray.width, gray.height, max_dimension)
    if (width, height) != gray.size:
        gray = gray.resize((width, height), Image.Resampling.LANCZOS)

    adjusted = gray.point(_contrast_table(contrast))

    buffer = io.BytesIO()
    adjusted.save(buffer, format="PNG")
    return NormalizedImage(data=buffer.getvalue(), width=width, height=height)


def normalized_filename(filename: str) -> str:
    stem = PurePath(filename).stem or "image"
    return f"{stem}.png"


def prepare_upload(
    image: UploadedImage,
    *,
    max_dimension: int = MAX_DIMENSION,
    contrast: float = CONTRAST,
) -> ExtractionRequest:
    """Normalize *image* for sending; fall back to the original bytes if it cannot be decoded."""
    try:
        normalized = normalize_image(image.data, max_dimension=max_dimension, contrast=contrast)
    except ImageDecodeError as exc:
        logger.warning(
            "normalization_skipped",
            extra={"upload_filename": image.filename, "error": str(exc)},
        )
        return ExtractionRequest(image=image, normalized=False)

    return ExtractionRequest(
        image=UploadedImage(
            data=normalized.data,
            mime_type=normalized.mime_type,
            filename=normalized_filename(image.filename),
        ),
        normalized=True,
    )
