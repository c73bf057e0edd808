"""
Image → model input tensor for the on-device classifier.

  bytes → cv2.imdecode (BGR) → RGB → bilinear resize to SIZE×SIZE
        → float32 / 255 → add batch axis → (1, SIZE, SIZE, 3)
"""
import asyncio
import cv2
import numpy as np
from rps_vision.orchestrator.contracts import ImageAsset, Tensor
from rps_vision.orchestrator.errors import DecodeError

MODEL_IMAGE_SIZE = 224


def _bytes_to_rgb(image_bytes: bytes) -> np.ndarray:
    if not image_bytes:
        raise DecodeError("empty image byte stream")
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if bgr is None:
        raise DecodeError("byte stream is not a decodable image")
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def to_tensor(image_bytes: bytes, size: int = MODEL_IMAGE_SIZE) -> Tensor:
    rgb = _bytes_to_rgb(image_bytes)
    resized = cv2.resize(rgb, (size, size), interpolation=cv2.INTER_LINEAR)
    del rgb
    normalized = resized.astype(np.float32) / 255.0
    del resized
    return np.expand_dims(normalized, axis=0)


class ImagePreprocessor:
    def __init__(self, status_store, size: int = MODEL_IMAGE_SIZE):
        self.status = status_store
        self.size = size

    async def preprocess(self, asset: ImageAsset) -> Tensor:
        """Read + decode + resize off the event loop. Raises ResourceReadError / DecodeError."""
        image_bytes = await asyncio.to_thread(asset.read_bytes)
        tensor = await asyncio.to_thread(to_tensor, image_bytes, self.size)
        self.status.log(f"preprocess: {asset.filename} -> {tuple(tensor.shape)}")
        return tensor
