import asyncio
import logging

import cv2

from errors import ScanError, ScanErrorKind

logger = logging.getLogger(__name__)


class PreviewWindow:
    """
    OpenCV window the camera stream is shown in.

    The terminal mounts it when the operator opens the scanner and unmounts
    it when the scanner goes away. `wait_ready()` resolves once mounted, so
    the scan session never has to guess when the window exists.
    """

    def __init__(self, title: str = "Scanner"):
        self.title = title
        self.stream = None
        self._mounted = False
        self._ready = asyncio.Event()

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self):
        cv2.namedWindow(self.title, cv2.WINDOW_AUTOSIZE)
        self._mounted = True
        self._ready.set()

    def unmount(self):
        self.unbind()
        if self._mounted:
            cv2.destroyWindow(self.title)
            cv2.waitKey(1)
        self._mounted = False
        self._ready.clear()

    async def wait_ready(self):
        await self._ready.wait()

    def bind(self, stream):
        if not self._mounted:
            raise ScanError(ScanErrorKind.DISPLAY_TARGET_GONE, f"window '{self.title}' is not open")
        self.stream = stream

    def unbind(self):
        self.stream = None

    def show(self, frame):
        """Draw a frame. Frames for an unbound window are dropped."""
        if not self._mounted or self.stream is None or frame is None:
            return
        cv2.imshow(self.title, frame)
        cv2.waitKey(1)
