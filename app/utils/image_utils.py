# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Image I/O and Conversion Utilities
Shared helpers used by the context builder, the mask builder and the
service façade. All internal processing uses BGRA uint8 numpy arrays
(OpenCV channel order plus an alpha plane).
"""

from pathlib import Path

import cv2
import httpx
import numpy as np

from app.api.middleware.error_handler import SourceUnavailableError
from app.utils.logger import get_logger

log = get_logger(__name__)

_REMOTE_PREFIXES = ("http://", "https://")


# ─── Channel Normalisation ───────────────────────────────────────────────────

def to_bgra(img: np.ndarray) -> np.ndarray:
    """
    Normalise any decoded OpenCV image to a BGRA uint8 array.
    Grayscale and BGR inputs gain an opaque alpha plane; 16-bit
    inputs are reduced to 8 bits.
    """
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2BGRA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    if channels == 4:
        return np.ascontiguousarray(img)
    raise ValueError(f"Unsupported channel count: {channels}")


# ─── Decode / Load ───────────────────────────────────────────────────────────

def bytes_to_bgra(data: bytes) -> np.ndarray:
    """Decode raw image bytes (JPEG / PNG / WebP) to a BGRA numpy array."""
    if not data:
        raise ValueError("Could not decode image bytes: empty buffer.")
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError("Could not decode image bytes.")
    return to_bgra(img)


def load_image_bgra(path: Path) -> np.ndarray:
    """
    Load an image from disk as a BGRA uint8 numpy array.
    Raises FileNotFoundError if path does not exist.
    Raises ValueError if the file cannot be decoded as an image.
    """
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not decode image: {path}")
    return to_bgra(img)


def is_remote(identifier: str) -> bool:
    return identifier.startswith(_REMOTE_PREFIXES)


def fetch_image(identifier: str, timeout: float = 10.0) -> np.ndarray:
    """
    Fetch and decode an image from a local path or an http(s) URL.

    Local paths and remote URLs are interchangeable once decoded; callers
    only ever see a BGRA array or a SourceUnavailableError.
    """
    try:
        if is_remote(identifier):
            resp = httpx.get(identifier, timeout=timeout, follow_redirects=True)
            resp.raise_for_status()
            img = bytes_to_bgra(resp.content)
        else:
            img = load_image_bgra(Path(identifier))
    except (httpx.HTTPError, OSError, ValueError) as e:
        raise SourceUnavailableError(
            f"Could not load image '{identifier}': {e}"
        ) from e

    log.debug(
        "image_fetched",
        source="remote" if is_remote(identifier) else "local",
        identifier=identifier,
        width=img.shape[1],
        height=img.shape[0],
    )
    return img


# ─── Encode ──────────────────────────────────────────────────────────────────

def bgra_to_png_bytes(img: np.ndarray) -> bytes:
    """Encode a BGRA numpy array to PNG bytes (lossless, alpha preserved)."""
    success, buf = cv2.imencode(".png", img)
    if not success:
        raise RuntimeError("Failed to encode image to PNG bytes.")
    return buf.tobytes()
