"""Shrink an image before upload: fit inside MAX×MAX, never upscale, re-encode as JPEG."""
import asyncio
import cv2
import numpy as np
from rps_vision.orchestrator.contracts import ImageAsset

MAX_SIZE = 800
JPEG_QUALITY = 80


def compress_bytes(image_bytes: bytes, max_size: int = MAX_SIZE, quality: int = JPEG_QUALITY):
    """Return (jpeg_bytes, width, height), or None if the image cannot be decoded/encoded."""
    img = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        return None
    h, w = img.shape[:2]
    scale = min(max_size / w, max_size / h, 1.0)
    if scale < 1.0:
        w, h = max(1, int(round(w * scale))), max(1, int(round(h * scale)))
        img = cv2.resize(img, (w, h), interpolation=cv2.INTER_AREA)
    ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        return None
    return bytes(buf), w, h


async def compress_for_upload(asset: ImageAsset, status_store,
                              max_size: int = MAX_SIZE, quality: int = JPEG_QUALITY) -> ImageAsset:
    """Compressed copy of `asset`; the original is returned when compression fails.

    Read errors are not swallowed here: an unreadable asset cannot be uploaded either.
    """
    raw = await asyncio.to_thread(asset.read_bytes)
    try:
        result = await asyncio.to_thread(compress_bytes, raw, max_size, quality)
    except cv2.error as e:
        status_store.log(f"compression: failed ({e}), uploading original")
        result = None
    if result is None:
        status_store.log("compression: could not re-encode, uploading original")
        return ImageAsset.from_bytes(raw, name=asset.filename, mime_type=asset.mime_type,
                                     width=asset.width, height=asset.height)

    data, w, h = result
    status_store.log(f"compression: {len(raw) // 1024}KB -> {len(data) // 1024}KB ({w}x{h})")
    name = asset.filename.rsplit(".", 1)[0] + ".jpg"
    return ImageAsset.from_bytes(data, name=name, mime_type="image/jpeg", width=w, height=h)
