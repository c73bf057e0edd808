"""
Remote gesture classifier (FastAPI service, usually on a free-tier host).

  GET  /          warmup probe, any 2xx = awake
  POST /predict   multipart, one `file` field holding a JPEG → JSON

The host sleeps when idle, so the first request after a pause can take
tens of seconds. Every call carries a hard deadline (asyncio.wait_for on
top of the httpx timeout); on expiry the request is torn down and
RequestTimeoutError is raised, never a partial result.
"""
import asyncio
import time
from typing import Optional
import httpx
from rps_vision.adapters.vision.base import GestureBackend
from rps_vision.adapters.vision.compression import compress_for_upload, JPEG_QUALITY, MAX_SIZE
from rps_vision.adapters.vision.normalizer import normalize
from rps_vision.orchestrator.contracts import BackendState, GesturePrediction, ImageAsset
from rps_vision.orchestrator.errors import NetworkError, RequestTimeoutError, ServerError

PREDICT_PATH = "/predict"
PREDICT_TIMEOUT_S = 60.0
WARMUP_TIMEOUT_S = 10.0


class RemoteInferenceBackend(GestureBackend):
    name = "remote"

    def __init__(self, status_store, base_url: str, predict_path: str = PREDICT_PATH,
                 predict_timeout: float = PREDICT_TIMEOUT_S, warmup_timeout: float = WARMUP_TIMEOUT_S,
                 upload_max_size: int = MAX_SIZE, upload_quality: int = JPEG_QUALITY,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.predict_path = predict_path
        self.predict_timeout = predict_timeout
        self.warmup_timeout = warmup_timeout
        self.upload_max_size = upload_max_size
        self.upload_quality = upload_quality
        self._transport = transport
        self.state = BackendState.UNINITIALIZED

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self._transport)

    async def _request(self, method: str, path: str, timeout: float, **kwargs) -> httpx.Response:
        try:
            async with self._client(timeout) as client:
                return await asyncio.wait_for(client.request(method, path, **kwargs), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(
                f"{method} {path} timed out after {timeout:g}s; the API may be cold-starting"
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

    async def predict(self, image: ImageAsset) -> dict:
        """Upload one image, return the parsed JSON body."""
        data = image.read_bytes()
        files = {"file": (image.filename, data, image.mime_type or "image/jpeg")}
        self.status.log(f"remote_api: POST {self.predict_path} ({len(data) // 1024}KB)")
        t0 = time.time()
        resp = await self._request(
            "POST", self.predict_path, self.predict_timeout,
            files=files, headers={"Accept": "application/json"},
        )
        dt = int((time.time() - t0) * 1000)
        if not resp.is_success:
            self.status.log(f"remote_api: HTTP {resp.status_code} ({dt}ms) — {resp.text[:300]}")
            raise ServerError(resp.status_code, resp.text)
        try:
            payload = resp.json()
        except ValueError as e:
            self.status.log(f"remote_api: non-JSON body ({dt}ms) — {resp.text[:300]}")
            raise ServerError(resp.status_code, resp.text) from e
        self.state = BackendState.READY
        self.status.log(f"remote_api: raw={payload} ({dt}ms)")
        return payload

    async def identify(self, asset: ImageAsset) -> Optional[GesturePrediction]:
        compressed = await compress_for_upload(
            asset, self.status, max_size=self.upload_max_size, quality=self.upload_quality,
        )
        payload = await self.predict(compressed)
        prediction = normalize(payload)
        if prediction is None:
            self.status.log(f"remote_api: no gesture label in response {payload}")
        else:
            self.status.log(f"remote_api: → {prediction.label.value} (conf={prediction.confidence:.2f})")
        return prediction

    async def warmup(self) -> bool:
        """GET / with the short deadline. Failures are logged and reported as False."""
        self.status.log(f"remote_api: warmup GET {self.base_url}/")
        try:
            resp = await self._request("GET", "/", self.warmup_timeout, headers={"Accept": "application/json"})
        except Exception as e:
            self.state = BackendState.FAILED
            self.status.log(f"remote_api: warmup failed (non-fatal): {e}")
            return False
        if not resp.is_success:
            self.state = BackendState.FAILED
            self.status.log(f"remote_api: warmup HTTP {resp.status_code} (non-fatal)")
            return False
        self.state = BackendState.READY
        self.status.log("remote_api: warmup ok, service awake")
        return True
