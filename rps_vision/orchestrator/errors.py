ERR_BUSY = "ERR_BUSY"
ERR_TIMEOUT = "ERR_TIMEOUT"
ERR_NETWORK = "ERR_NETWORK"
ERR_SERVER = "ERR_SERVER"
ERR_DECODE = "ERR_DECODE"
ERR_IO = "ERR_IO"
ERR_MODEL = "ERR_MODEL"
ERR_UNRECOGNIZED = "ERR_UNRECOGNIZED"
ERR_BACKEND = "ERR_BACKEND"
ERR_UNKNOWN = "ERR_UNKNOWN"


class GestureError(Exception):
    code = ERR_UNKNOWN


class DecodeError(GestureError, ValueError):
    code = ERR_DECODE


class ResourceReadError(GestureError, OSError):
    code = ERR_IO


class ModelLoadError(GestureError):
    code = ERR_MODEL


class BackendNotReadyError(GestureError):
    code = ERR_MODEL


class NetworkError(GestureError):
    code = ERR_NETWORK


class RequestTimeoutError(GestureError, TimeoutError):
    code = ERR_TIMEOUT


class ServerError(GestureError):
    code = ERR_SERVER

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"prediction API responded with {status}: {body[:300]}")


class PipelineBusyError(GestureError):
    code = ERR_BUSY


class UnknownBackendError(GestureError):
    code = ERR_BACKEND


# Caller-facing text per failure kind, shown instead of a stack trace
MESSAGES: dict[str, str] = {
    ERR_BUSY: "A classification is already running. Wait for it to finish.",
    ERR_TIMEOUT: (
        "The prediction request timed out. The inference service may be cold-starting; "
        "wait 10-15 seconds and try again."
    ),
    ERR_NETWORK: "Unable to reach the inference service. Check the network connection.",
    ERR_SERVER: "The inference service returned an error. Try again later.",
    ERR_DECODE: "The image could not be decoded. Try another photo.",
    ERR_IO: "The image is unavailable. Please try again.",
    ERR_MODEL: "The on-device model is not available. Try again or use the remote backend.",
    ERR_UNRECOGNIZED: "Could not recognize your hand. Try again with better lighting and a centered gesture.",
    ERR_BACKEND: "Unknown inference backend.",
    ERR_UNKNOWN: "Prediction failed. Please try again.",
}


def error_code(exc: BaseException) -> str:
    if isinstance(exc, GestureError):
        return exc.code
    if isinstance(exc, TimeoutError):
        return ERR_TIMEOUT
    return ERR_UNKNOWN


def describe(code: str) -> str:
    return MESSAGES.get(code, MESSAGES[ERR_UNKNOWN])
