import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from app.receipt.base import ImageProcessingError

logger = logging.getLogger("receipts")

OUTPUT_CONTENT_TYPE = "image/jpeg"


def preprocess_image(data: bytes, max_dimension: int = 2048, quality: int = 85) -> bytes:
    """Normalize an uploaded image to a JPEG that fits inside max_dimension.

    Aspect ratio is kept and small images are never enlarged.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img = ImageOps.exif_transpose(img)
        if img.mode != "RGB":
            img = img.convert("RGB")

        w, h = img.size
        img.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Failed to process the uploaded image: {e}") from e

    out = buf.getvalue()
    logger.debug(
        "Image preprocessed",
        extra={"extra_data": {
            "original_size": [w, h],
            "processed_size": list(img.size),
            "original_bytes": len(data),
            "processed_bytes": len(out),
        }},
    )
    return out
