import asyncio
import logging
import threading

import cv2

import config
from errors import ScanError, ScanErrorKind
from scan_session import ConstraintTier

logger = logging.getLogger(__name__)


class VideoTrack:
    """
    The single video track of an opened capture device.

    Frames are read from an executor thread while stop() runs on the event
    loop, and a VideoCapture must not be released mid-read, so both hold
    the same lock. stop() therefore waits for at most one in-flight read.
    """

    def __init__(self, cap):
        self.cap = cap
        self._lock = threading.Lock()

    @property
    def live(self) -> bool:
        return self.cap is not None

    def read(self):
        """Grab a single frame from the camera. Returns None if failed."""
        with self._lock:
            if self.cap is None:
                return None
            ok, frame = self.cap.read()
        if not ok:
            return None
        return frame

    def settings(self) -> dict:
        with self._lock:
            if self.cap is None:
                return {}
            return {
                "width": int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                "height": int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            }

    def stop(self):
        with self._lock:
            if self.cap is not None:
                self.cap.release()
                self.cap = None


class CameraStream:
    def __init__(self, cap, label: str = ""):
        self.label = label
        self._tracks = [VideoTrack(cap)]

    def tracks(self):
        return list(self._tracks)

    @property
    def live(self) -> bool:
        return any(t.live for t in self._tracks)

    def read_frame(self):
        return self._tracks[0].read()

    def stop(self):
        for track in self._tracks:
            track.stop()


class CameraService:
    """
    Opens capture devices with OpenCV.

    acquire() runs the blocking open in the default executor. If the caller
    is cancelled while the device is still opening, the device is released
    as soon as the open finishes.
    """

    def __init__(self, indices: dict = None, any_index: int = None):
        self.indices = config.camera_indices() if indices is None else indices
        self.any_index = config.CAMERA_INDEX_ANY if any_index is None else any_index

    def is_supported(self) -> bool:
        registry = getattr(cv2, "videoio_registry", None)
        if registry is None:
            return hasattr(cv2, "VideoCapture")
        return len(registry.getCameraBackends()) > 0

    async def acquire(self, tier: ConstraintTier) -> CameraStream:
        loop = asyncio.get_running_loop()
        fut = loop.run_in_executor(None, self._open, tier)
        try:
            return await asyncio.shield(fut)
        except asyncio.CancelledError:
            fut.add_done_callback(_release_late_stream)
            raise

    def _open(self, tier: ConstraintTier) -> CameraStream:
        if tier.facing is None:
            index = self.any_index
        elif tier.facing in self.indices:
            index = self.indices[tier.facing]
        else:
            raise ScanError(ScanErrorKind.CONSTRAINTS_UNSUPPORTED, f"no {tier.facing} camera configured")

        logger.debug("Opening camera %d for %s", index, tier.label)
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise ScanError(ScanErrorKind.DEVICE_NOT_FOUND, f"cannot open camera with index {index}")

        if tier.width and tier.height:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, tier.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, tier.height)
            got = (int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
            if got != (tier.width, tier.height):
                cap.release()
                raise ScanError(
                    ScanErrorKind.CONSTRAINTS_UNSUPPORTED,
                    f"asked {tier.width}x{tier.height}, got {got[0]}x{got[1]}",
                )

        # Opened but no frames usually means another process holds the device
        ok, _ = cap.read()
        if not ok:
            cap.release()
            raise ScanError(ScanErrorKind.DEVICE_BUSY, f"camera {index} returns no frames")

        stream = CameraStream(cap, label=tier.label)
        logger.info("Camera %d open (%s) %s", index, tier.label, stream.tracks()[0].settings())
        return stream


def _release_late_stream(fut):
    if fut.cancelled() or fut.exception() is not None:
        return
    logger.info("Releasing camera that finished opening after cancel")
    fut.result().stop()

