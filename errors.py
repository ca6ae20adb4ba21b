import errno
from enum import Enum


class ScanErrorKind(str, Enum):
    CAPABILITY_UNAVAILABLE = "CapabilityUnavailable"
    PERMISSION_DENIED = "PermissionDenied"
    DEVICE_NOT_FOUND = "DeviceNotFound"
    DEVICE_BUSY = "DeviceBusy"
    CONSTRAINTS_UNSUPPORTED = "ConstraintsUnsupported"
    DISPLAY_TARGET_GONE = "DisplayTargetGone"
    SURFACE_NOT_READY = "SurfaceNotReady"
    UNKNOWN = "Unknown"


USER_MESSAGES = {
    ScanErrorKind.CAPABILITY_UNAVAILABLE: "This device does not expose a camera.",
    ScanErrorKind.PERMISSION_DENIED: "Camera permission denied. Check the system privacy settings.",
    ScanErrorKind.DEVICE_NOT_FOUND: "No camera found.",
    ScanErrorKind.DEVICE_BUSY: "The camera is in use by another application.",
    ScanErrorKind.CONSTRAINTS_UNSUPPORTED: "The camera does not support the requested settings.",
    ScanErrorKind.DISPLAY_TARGET_GONE: "The preview window was closed before the camera was ready.",
    ScanErrorKind.SURFACE_NOT_READY: "The preview window did not open in time.",
    ScanErrorKind.UNKNOWN: "Could not open the camera.",
}


class ScanError(Exception):
    """A scan session failed. `kind` tells which way."""

    def __init__(self, kind: ScanErrorKind, detail: str = ""):
        self.kind = ScanErrorKind(kind)
        self.detail = detail
        super().__init__(f"{self.kind.value}: {detail}" if detail else self.kind.value)

    @property
    def user_message(self) -> str:
        msg = USER_MESSAGES[self.kind]
        if self.kind is ScanErrorKind.UNKNOWN and self.detail:
            return f"{msg} ({self.detail})"
        return msg


class ValidationError(Exception):
    """The product form cannot be saved as filled in."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


def to_scan_error(exc: BaseException) -> ScanError:
    """Map whatever the platform raised to a ScanError."""
    if isinstance(exc, ScanError):
        return exc
    if isinstance(exc, PermissionError):
        return ScanError(ScanErrorKind.PERMISSION_DENIED, str(exc))
    if isinstance(exc, FileNotFoundError):
        return ScanError(ScanErrorKind.DEVICE_NOT_FOUND, str(exc))
    if isinstance(exc, OSError) and exc.errno == errno.EBUSY:
        return ScanError(ScanErrorKind.DEVICE_BUSY, str(exc))
    return ScanError(ScanErrorKind.UNKNOWN, f"{type(exc).__name__} {exc}".strip())
