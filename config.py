import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(__file__)

# Seed catalog, relative to this Python file unless overridden
CATALOG_CSV = os.getenv("POS_CATALOG_CSV", os.path.join(BASE_DIR, "items.csv"))
BEEP_PATH = os.getenv("POS_BEEP_PATH", os.path.join(BASE_DIR, "checkout_sound.wav"))

# OpenCV has no notion of "facing mode", so map it to device indices.
# An empty value means the facing is not available on this machine.
CAMERA_INDEX_REAR = os.getenv("POS_CAMERA_INDEX_REAR", "0")
CAMERA_INDEX_FRONT = os.getenv("POS_CAMERA_INDEX_FRONT", "")
CAMERA_INDEX_ANY = int(os.getenv("POS_CAMERA_INDEX_ANY", "0"))

CAMERA_WIDTH = int(os.getenv("POS_CAMERA_WIDTH", "640"))
CAMERA_HEIGHT = int(os.getenv("POS_CAMERA_HEIGHT", "480"))

# Seconds to wait for the preview window before giving up on a session
SURFACE_READY_TIMEOUT = float(os.getenv("POS_SURFACE_READY_TIMEOUT", "5.0"))

# Delay between two decode attempts
DECODE_INTERVAL = float(os.getenv("POS_DECODE_INTERVAL", "0.05"))

SYMBOLOGIES = tuple(
    s.strip().upper()
    for s in os.getenv("POS_SYMBOLOGIES", "EAN13,EAN8,UPCA,UPCE,CODE128,CODE39,QRCODE").split(",")
    if s.strip()
)

LOG_LEVEL = os.getenv("POS_LOG_LEVEL", "INFO")


def camera_indices():
    """Return {facing: device index} for the facings configured on this machine."""
    indices = {}
    if CAMERA_INDEX_REAR.strip():
        indices["environment"] = int(CAMERA_INDEX_REAR)
    if CAMERA_INDEX_FRONT.strip():
        indices["user"] = int(CAMERA_INDEX_FRONT)
    return indices
