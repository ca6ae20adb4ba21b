import asyncio
import logging
from typing import AsyncIterator, Iterable, Optional

import cv2
from pyzbar.pyzbar import ZBarSymbol, decode

import config

logger = logging.getLogger(__name__)


class BarcodeDecoder:
    """
    Continuous barcode reader over a CameraStream, backed by zbar.

    attempts() yields one entry per frame: the decoded text, or None when
    nothing was found. reset() ends the running sequence; a later call to
    attempts() starts a fresh one.
    """

    def __init__(self, interval: float = None):
        self.interval = config.DECODE_INTERVAL if interval is None else interval
        self._generation = 0

    def reset(self):
        self._generation += 1

    async def attempts(self, surface, stream, symbologies: Iterable[str] = None) -> AsyncIterator[Optional[str]]:
        generation = self._generation
        symbols = _symbols(symbologies)

        while generation == self._generation:
            # Reading and zbar both block, so only drawing stays on the loop
            frame, text = await asyncio.to_thread(self._read_and_decode, stream, symbols)
            if generation != self._generation:
                break
            if frame is not None:
                surface.show(frame)
            yield text
            await asyncio.sleep(self.interval)

    def _read_and_decode(self, stream, symbols):
        frame = stream.read_frame()
        if frame is None:
            return None, None
        return frame, self.decode_frame(frame, symbols)

    @staticmethod
    def decode_frame(frame, symbols=None) -> Optional[str]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        for barcode in decode(gray, symbols=symbols):
            try:
                text = barcode.data.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Skipping %s barcode with non UTF-8 payload %r", barcode.type, barcode.data)
                continue
            logger.debug("Decoded %s %s", barcode.type, text)
            return text
        return None


def _symbols(names):
    if not names:
        return None
    symbols = []
    for name in names:
        try:
            symbols.append(ZBarSymbol[name.upper()])
        except KeyError:
            logger.warning("Unknown symbology %s ignored", name)
    return symbols or None
