import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import config
from errors import ScanError, ScanErrorKind, to_scan_error

logger = logging.getLogger(__name__)


class ScanPhase(str, Enum):
    IDLE = "Idle"
    OPENING = "Opening"
    ACQUIRING = "Acquiring"
    STREAMING = "Streaming"
    CLOSING = "Closing"
    ERROR = "Error"


@dataclass(frozen=True)
class ConstraintTier:
    """One set of camera parameters to try. facing=None means any camera."""
    label: str
    facing: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


def default_tiers(width: int = None, height: int = None):
    """Rear camera at a bounded resolution, then rear camera, then anything."""
    width = config.CAMERA_WIDTH if width is None else width
    height = config.CAMERA_HEIGHT if height is None else height
    return (
        ConstraintTier(f"rear camera {width}x{height}", facing="environment", width=width, height=height),
        ConstraintTier("rear camera", facing="environment"),
        ConstraintTier("any camera"),
    )


@dataclass
class ScanSession:
    id: int
    phase: ScanPhase = ScanPhase.OPENING
    tier: Optional[ConstraintTier] = None
    stream: object = None
    bound: bool = False
    accepting: bool = False
    closed: bool = False
    start_task: Optional[asyncio.Task] = None
    decode_task: Optional[asyncio.Task] = None
    error: Optional[ScanError] = None


class ScanSessionController:
    """
    Runs one camera scan at a time: acquire a camera (falling back through
    the constraint tiers), bind it to the preview surface, decode frames
    until the first barcode, hand that barcode to `on_detected` exactly
    once and release everything.

    All methods run on the event loop thread. close() is synchronous so it
    can be called from anywhere, including from inside the decode loop.
    """

    def __init__(
        self,
        camera,
        surface,
        decoder,
        on_detected: Callable[[str], None],
        feedback: Callable[[], None] = None,
        tiers: Sequence[ConstraintTier] = None,
        symbologies: Sequence[str] = None,
        surface_timeout: float = None,
        on_phase_change: Callable[[ScanPhase], None] = None,
    ):
        self.camera = camera
        self.surface = surface
        self.decoder = decoder
        self.on_detected = on_detected
        self.feedback = feedback
        self.tiers = tuple(default_tiers() if tiers is None else tiers)
        self.symbologies = config.SYMBOLOGIES if symbologies is None else tuple(symbologies)
        self.surface_timeout = config.SURFACE_READY_TIMEOUT if surface_timeout is None else surface_timeout
        self.on_phase_change = on_phase_change

        self.last_error: Optional[ScanError] = None
        self._session: Optional[ScanSession] = None
        self._next_id = 1
        self._streams = []  # every acquired stream not yet stopped

    @property
    def phase(self) -> ScanPhase:
        return self._session.phase if self._session is not None else ScanPhase.IDLE

    @property
    def session(self) -> Optional[ScanSession]:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def live_streams(self):
        return list(self._streams)

    # ------------------------------------------------------------------
    # open
    # ------------------------------------------------------------------
    async def open(self) -> bool:
        """
        Start a scan session. Returns True once the camera is streaming,
        False if the session failed (see last_error) or was closed while
        starting.
        """
        if self._session is not None:
            logger.warning("Scan session %d is %s, open ignored", self._session.id, self._session.phase.value)
            return False

        self.last_error = None
        if not self.camera.is_supported():
            self._fail(None, ScanError(ScanErrorKind.CAPABILITY_UNAVAILABLE))
            return False

        # Whatever a previous session left behind goes first
        self.close()

        session = ScanSession(id=self._next_id)
        self._next_id += 1
        self._session = session
        self._set_phase(session, ScanPhase.OPENING)

        session.start_task = asyncio.ensure_future(self._start(session))
        try:
            await session.start_task
        except asyncio.CancelledError:
            if session.closed:
                return False
            self.close()
            raise

        return self._session is session and session.phase is ScanPhase.STREAMING

    async def _start(self, session: ScanSession):
        try:
            stream = await self._acquire(session)
            session.stream = stream

            try:
                await asyncio.wait_for(self.surface.wait_ready(), self.surface_timeout)
            except asyncio.TimeoutError:
                raise ScanError(ScanErrorKind.SURFACE_NOT_READY, f"waited {self.surface_timeout}s")

            self.surface.bind(stream)
            session.bound = True
        except ScanError as e:
            self._fail(session, e)
            return
        except Exception as e:
            self._fail(session, to_scan_error(e))
            return

        session.accepting = True
        self._set_phase(session, ScanPhase.STREAMING)
        session.decode_task = asyncio.ensure_future(self._decode_loop(session))

    async def _acquire(self, session: ScanSession):
        last_error = None
        for tier in self.tiers:
            session.tier = tier
            self._set_phase(session, ScanPhase.ACQUIRING)
            try:
                stream = await self.camera.acquire(tier)
            except Exception as e:
                last_error = to_scan_error(e)
                logger.info("Camera tier '%s' failed: %s", tier.label, last_error)
                continue

            self._streams.append(stream)
            logger.info("Camera acquired with tier '%s'", tier.label)
            return stream

        raise last_error or ScanError(ScanErrorKind.UNKNOWN, "no constraint tiers configured")

    # ------------------------------------------------------------------
    # decoding
    # ------------------------------------------------------------------
    async def _decode_loop(self, session: ScanSession):
        attempts = self.decoder.attempts(self.surface, session.stream, self.symbologies)
        try:
            async for text in attempts:
                if self.handle_attempt(session, text):
                    break
        except Exception as e:
            if self._session is session:
                self._fail(session, to_scan_error(e))
            else:
                logger.debug("Decode loop of closed session %d ended with %r", session.id, e)
        finally:
            aclose = getattr(attempts, "aclose", None)
            if aclose is not None:
                await aclose()

    def handle_attempt(self, session: ScanSession, text: Optional[str]) -> bool:
        """
        Handle one decode attempt for session. Returns True when the
        session wants no more attempts.
        """
        if session is not self._session or not session.accepting:
            logger.debug("Discarding decode attempt %r for session %d", text, session.id)
            return True
        if text is None:
            return False
        code = str(text).strip()
        if not code:
            return False

        # Only the first read of a session gets through
        session.accepting = False
        logger.info("Scanned %s", code)
        if self.feedback is not None:
            self._safely(self.feedback, "feedback signal")
        self.close()

        try:
            self.on_detected(code)
        except Exception:
            logger.exception("Handling scanned code %s failed", code)
        return True

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------
    def close(self):
        """Stop scanning and release the camera. Safe to call at any time."""
        session = self._session
        if session is not None:
            session.accepting = False
            self._set_phase(session, ScanPhase.CLOSING)
            self._teardown(session)
        self._release_streams()

    def _fail(self, session: Optional[ScanSession], error: ScanError):
        self.last_error = error
        logger.warning("Scan session failed: %s", error)
        if session is None:
            self._notify(ScanPhase.ERROR)
            self._notify(ScanPhase.IDLE)
            return
        session.error = error
        session.accepting = False
        self._set_phase(session, ScanPhase.ERROR)
        self._teardown(session)

    def _teardown(self, session: ScanSession):
        session.accepting = False
        session.closed = True

        if session.decode_task is not None:
            self._safely(self.decoder.reset, "decoder reset")
            _cancel(session.decode_task)
        _cancel(session.start_task)

        if session.stream is not None:
            self._stop_stream(session.stream)
        if session.bound:
            self._safely(self.surface.unbind, "surface unbind")

        session.stream = None
        session.bound = False
        session.decode_task = None
        session.start_task = None
        if self._session is session:
            self._session = None
        self._set_phase(session, ScanPhase.IDLE)

    def _release_streams(self):
        for stream in list(self._streams):
            logger.info("Releasing leftover camera stream")
            self._stop_stream(stream)

    def _stop_stream(self, stream):
        try:
            tracks = stream.tracks()
        except Exception:
            logger.warning("Could not list camera tracks", exc_info=True)
            tracks = []
        for track in tracks:
            self._safely(track.stop, "track stop")
        if stream in self._streams:
            self._streams.remove(stream)

    # ------------------------------------------------------------------
    def _set_phase(self, session: ScanSession, phase: ScanPhase):
        session.phase = phase
        if phase is ScanPhase.ACQUIRING and session.tier is not None:
            logger.debug("Session %d -> %s(%s)", session.id, phase.value, session.tier.label)
        else:
            logger.debug("Session %d -> %s", session.id, phase.value)
        self._notify(phase)

    def _notify(self, phase: ScanPhase):
        if self.on_phase_change is not None:
            self._safely(lambda: self.on_phase_change(phase), "phase listener")

    @staticmethod
    def _safely(fn, what: str):
        try:
            fn()
        except Exception:
            logger.warning("%s failed", what, exc_info=True)


def _cancel(task):
    if task is None or task.done():
        return
    try:
        current = asyncio.current_task()
    except RuntimeError:
        current = None
    if task is not current:
        task.cancel()
