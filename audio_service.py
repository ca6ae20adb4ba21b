import logging
import os
import threading

import config

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# simpleaudio needs a working sound backend and does not build everywhere,
# so we guard it. Without it the beep is simply skipped.
# ---------------------------------------------------------------------
try:
    import simpleaudio as sa
    SA_AVAILABLE = True
except Exception as e:
    sa = None
    SA_AVAILABLE = False
    logger.info("simpleaudio NOT available, beep disabled: %s", e)


class AudioService:
    def __init__(self, beep_path: str = None, enabled: bool = True):
        if beep_path is None:
            beep_path = config.BEEP_PATH

        self.wave_obj = None
        if not (enabled and SA_AVAILABLE):
            return

        if os.path.exists(beep_path):
            try:
                self.wave_obj = sa.WaveObject.from_wave_file(beep_path)
            except Exception as e:
                logger.warning("Could not load beep sound: %s", e)
        else:
            logger.info("Beep file not found at: %s", beep_path)

    @property
    def enabled(self) -> bool:
        return self.wave_obj is not None

    def play_beep(self):
        """Play the scan beep (non-blocking). No-op without audio support."""
        if self.wave_obj is None:
            return

        def _play():
            try:
                self.wave_obj.play()
            except Exception as e:
                logger.warning("Beep play error: %s", e)

        threading.Thread(target=_play, daemon=True).start()
