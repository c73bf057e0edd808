"""
Smoke test script — hits all endpoints of a running service and verifies responses.

Usage:
    # against the fake inference service:
    python -m rps_vision.scripts.fake_gesture_server                                  (terminal 1)
    GESTURE_API_BASE_URL=http://localhost:9000 uvicorn rps_vision.services.api:app    (terminal 2)
    python -m rps_vision.scripts.smoke_test                                            (terminal 3)
"""

import base64
import sys
import cv2
import httpx
import numpy as np

BASE = "http://localhost:8000"
TIMEOUT = 90.0
passed = 0
failed = 0


def _sample_image_b64() -> str:
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    cv2.circle(img, (320, 240), 120, (180, 200, 230), -1)
    ok, buf = cv2.imencode(".jpg", img)
    return base64.b64encode(bytes(buf)).decode("ascii")


def test(name: str, method: str, path: str, body: dict | None = None, checks: dict | None = None):
    global passed, failed
    url = f"{BASE}{path}"
    checks = checks or {}
    try:
        if method == "GET":
            r = httpx.get(url, timeout=TIMEOUT)
        else:
            r = httpx.post(url, json=body or {}, timeout=TIMEOUT)

        if r.status_code != 200:
            print(f"  FAIL  {name} — HTTP {r.status_code}")
            failed += 1
            return

        data = r.json()
        for key, expected in checks.items():
            actual = data.get(key)
            if actual != expected:
                print(f"  FAIL  {name} — {key}: expected {expected!r}, got {actual!r}")
                failed += 1
                return

        print(f"  OK    {name}")
        passed += 1

    except httpx.ConnectError:
        print(f"  FAIL  {name} — connection refused (is the server running?)")
        failed += 1
    except Exception as e:
        print(f"  FAIL  {name} — {type(e).__name__}: {e}")
        failed += 1


def main():
    image = _sample_image_b64()
    print(f"\nSmoke tests against {BASE}\n")
    print("--- Health & Status ---")
    test("GET /health", "GET", "/health", None, {"all_ok": True})
    test("GET /status", "GET", "/status")

    print("\n--- Warmup ---")
    test("POST /warmup", "POST", "/warmup", None, {"attempted": True})

    print("\n--- Classify ---")
    test("POST /classify (remote)", "POST", "/classify",
         {"image": image, "backend": "remote"},
         {"ok": True})
    test("POST /classify (bad base64)", "POST", "/classify",
         {"image": "not base64!"},
         {"ok": False, "error_code": "ERR_DECODE"})
    test("POST /classify (not an image)", "POST", "/classify",
         {"image": "aGVsbG8=", "backend": "local"},
         {"ok": False})

    print("\n--- Play ---")
    test("POST /play (remote, counter=rock)", "POST", "/play",
         {"image": image, "backend": "remote", "counter": "rock"},
         {"ok": True, "counter": "rock"})

    print("\n--- Resolve ---")
    test("POST /resolve paper vs rock", "POST", "/resolve",
         {"player": "paper", "counter": "rock"},
         {"result": "win"})
    test("POST /resolve rock vs rock", "POST", "/resolve",
         {"player": "rock", "counter": "rock"},
         {"result": "draw"})

    print("\n--- Final Status ---")
    test("GET /status (final)", "GET", "/status", None, {"busy": False})

    total = passed + failed
    print(f"\n{'='*40}")
    print(f"  {passed}/{total} passed, {failed} failed")
    print(f"{'='*40}\n")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
