"""
Perceptual average hashing for near-duplicate image detection.

The average hash (aHash) downsamples an image to an 8x8 grayscale grid and
emits one bit per pixel: 1 when the pixel is brighter than the grid mean.
It survives mild recompression, resizing and small brightness changes. It
does NOT survive rotation, cropping, mirroring or heavy edits, so a large
Hamming distance is not proof that two images are unrelated.
"""

import io

import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from asset_verify import config
from asset_verify.core.errors import InputError, LengthMismatchError

logger = structlog.get_logger()


def average_hash(image_bytes: bytes, hash_size: int = config.PERCEPTUAL_HASH_SIZE) -> str:
    """
    Generate the average hash of an encoded image as a '0'/'1' string.

    Returns:
        hash_size * hash_size characters in row-major order
    """
    if not image_bytes:
        raise InputError("Cannot hash an empty image buffer")

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            # Convert to grayscale, then resize to hash_size x hash_size
            image = image.convert("L").resize(
                (hash_size, hash_size), Image.Resampling.LANCZOS
            )
            pixels = np.asarray(image, dtype=np.float64)
    except Image.DecompressionBombError as e:
        logger.error("Rejected oversized image for perceptual hash", error=str(e))
        raise InputError(f"Image too large to hash: {e}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error("Failed to decode image for perceptual hash", error=str(e))
        raise InputError(f"Unreadable image data: {e}") from e

    avg = pixels.mean()
    hash_bits = "".join("1" if pixel > avg else "0" for pixel in pixels.flatten())

    logger.debug("Generated aHash", hash_size=hash_size, mean_luminance=round(float(avg), 2))
    return hash_bits


def hamming_distance(hash1: str, hash2: str) -> int:
    """Count differing bit positions between two equal-length hash strings."""
    if len(hash1) != len(hash2):
        raise LengthMismatchError(len(hash1), len(hash2))

    return sum(c1 != c2 for c1, c2 in zip(hash1, hash2))


def are_similar(hash1: str, hash2: str, threshold: int = config.SIMILARITY_THRESHOLD) -> bool:
    return hamming_distance(hash1, hash2) <= threshold


def hash_similarity(hash1: str, hash2: str) -> float:
    """Similarity in [0, 1]: 1 - distance / bit length."""
    distance = hamming_distance(hash1, hash2)
    return 1.0 - distance / len(hash1) if hash1 else 1.0
