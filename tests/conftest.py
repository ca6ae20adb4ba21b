"""Shared fixtures and platform fakes for the POS tests."""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Modules live at the repository root
root = Path(__file__).parent.parent
sys.path.insert(0, str(root))

from catalog import Product, ProductCatalog
from errors import ScanError, ScanErrorKind
from scan_session import ConstraintTier, ScanSessionController


TIERS = (
    ConstraintTier("bounded", facing="environment", width=640, height=480),
    ConstraintTier("rear", facing="environment"),
    ConstraintTier("any"),
)

COKE = "7791234567890"
COOKIES = "7790000000001"


class FakeTrack:
    def __init__(self):
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeStream:
    def __init__(self, label: str):
        self.label = label
        self._tracks = [FakeTrack()]

    def tracks(self):
        return list(self._tracks)

    @property
    def live(self) -> bool:
        return not all(t.stopped for t in self._tracks)


class FakeCamera:
    """
    Camera provider whose outcome per tier label is scripted: an exception
    is raised, an asyncio.Event is awaited before succeeding, anything else
    succeeds.
    """

    def __init__(self, outcomes: dict = None, supported: bool = True):
        self.outcomes = outcomes or {}
        self.supported = supported
        self.calls = []
        self.streams = []

    def is_supported(self) -> bool:
        return self.supported

    async def acquire(self, tier):
        self.calls.append(tier.label)
        await asyncio.sleep(0)
        outcome = self.outcomes.get(tier.label)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, asyncio.Event):
            await outcome.wait()
        stream = FakeStream(tier.label)
        self.streams.append(stream)
        return stream


class FakeSurface:
    def __init__(self, ready: bool = True, gone: bool = False):
        self.ready = ready
        self.gone = gone
        self.mounted = False
        self.stream = None
        self.unbind_calls = 0

    def mount(self):
        self.mounted = True

    def unmount(self):
        self.unbind()
        self.mounted = False

    async def wait_ready(self):
        if not self.ready:
            await asyncio.Event().wait()

    def bind(self, stream):
        if self.gone:
            raise ScanError(ScanErrorKind.DISPLAY_TARGET_GONE)
        self.stream = stream

    def unbind(self):
        self.unbind_calls += 1
        self.stream = None


class FakeDecoder:
    """Yields the scripted results, then waits forever (or raises `error`)."""

    def __init__(self, results=(), error: Exception = None):
        self.results = list(results)
        self.error = error
        self.resets = 0
        self.hints = []

    def reset(self):
        self.resets += 1

    async def attempts(self, surface, stream, symbologies=None):
        self.hints.append(symbologies)
        for result in self.results:
            yield result
        if self.error is not None:
            raise self.error
        await asyncio.Event().wait()


async def settle(rounds: int = 50):
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_controller(camera=None, surface=None, decoder=None, detected=None, **kwargs):
    detected = [] if detected is None else detected
    return ScanSessionController(
        camera or FakeCamera(),
        surface or FakeSurface(),
        decoder or FakeDecoder(),
        on_detected=detected.append,
        tiers=kwargs.pop("tiers", TIERS),
        symbologies=kwargs.pop("symbologies", ("EAN13",)),
        surface_timeout=kwargs.pop("surface_timeout", 1.0),
        **kwargs,
    )


@pytest.fixture
def catalog():
    return ProductCatalog(seed=[
        Product(COKE, "Coca Cola", "Coca Cola 500ml", Decimal("1500")),
        Product(COOKIES, "Galletitas", "Galletitas surtidas", Decimal("900")),
        Product("7790000000002", "Yerba", "Yerba 1kg", Decimal("3200")),
    ])
