import argparse
import asyncio
import contextlib
import logging

import config
from audio_service import AudioService
from camera_service import CameraService
from cart_manager import CartManager
from catalog import ProductCatalog
from decoder import BarcodeDecoder
from display_surface import PreviewWindow
from product_form import ProductCreationFlow
from scan_session import ScanPhase, ScanSessionController

logger = logging.getLogger(__name__)

HELP = """\
Type or scan a code and press Enter to add it.
  s        open scanner        c        close scanner
  -CODE    remove a line       x        clear cart
  r        receipt             q        quit
"""


def print_receipt(cart: CartManager):
    print("\n===== RECEIPT =====")
    lines = cart.get_lines()
    if not lines:
        print("(no items)")
    else:
        for line in lines:
            print(f"{line.name:24} {line.code:>14} x{line.quantity:2} = {line.subtotal:.2f}")
    print(f"TOTAL: {cart.get_total():.2f}")
    print("===================")


class PosTerminal:
    """Console front end: manual entry, scanner toggle, cart and product form."""

    def __init__(self, catalog: ProductCatalog, camera, surface, decoder, audio: AudioService):
        self.catalog = catalog
        self.cart = CartManager(catalog)
        self.creation = ProductCreationFlow(catalog, add_to_cart=self._add)
        self.cart.on_miss = self._on_miss
        self.surface = surface
        self.scanner = ScanSessionController(
            camera,
            surface,
            decoder,
            on_detected=self._add,
            feedback=audio.play_beep,
            on_phase_change=self._on_phase,
        )
        self._scan_task = None

    # ------------------------------
    # cart events
    # ------------------------------
    def _add(self, code: str):
        line = self.cart.add_by_code(code)
        if line is not None:
            print(f"Added: {line.name} x{line.quantity} = {line.subtotal:.2f}   TOTAL: {self.cart.total:.2f}")
        return line

    def _on_miss(self, code: str):
        self.creation.start(code)
        print(f"Unknown code {code}. Press Enter to create the product.")

    def _on_phase(self, phase: ScanPhase):
        if phase is ScanPhase.IDLE and self.surface.mounted:
            self.surface.unmount()

    # ------------------------------
    # scanner toggle
    # ------------------------------
    async def _run_scanner(self):
        if not await self.scanner.open() and self.scanner.last_error is not None:
            print(f"Camera error: {self.scanner.last_error.user_message}")

    def open_scanner(self):
        if self.scanner.active:
            print("Scanner already open.")
            return
        self.surface.mount()
        self._scan_task = asyncio.ensure_future(self._run_scanner())

    def close_scanner(self):
        self.scanner.close()

    async def _stop_scanner(self):
        task, self._scan_task = self._scan_task, None
        if task is not None and not task.done():
            task.cancel()
        self.scanner.close()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------
    # product form
    # ------------------------------
    async def _ask(self, label: str, current: str) -> str:
        answer = await asyncio.to_thread(input, f"  {label} [{current}]: ")
        return answer.strip() or current

    async def fill_draft(self):
        draft = self.creation.draft
        print(f"\nNew product for code {draft.code}")
        while self.creation.draft is draft:
            draft.code = await self._ask("Code", draft.code)
            draft.name = await self._ask("Name", draft.name)
            draft.description = await self._ask("Description", draft.description)
            draft.price_text = await self._ask("Price", draft.price_text)

            choice = await asyncio.to_thread(input, "  Save (Enter) or cancel (c)? ")
            if choice.strip().lower() == "c":
                self.creation.cancel()
                print("Product not created.")
            elif self.creation.save() is None:
                print(f"  {draft.error}")

    # ------------------------------
    # main loop
    # ------------------------------
    def handle_command(self, line: str) -> bool:
        """Run one typed line. Returns False to quit."""
        cmd = line.strip()
        if cmd == "q":
            return False
        if cmd == "s":
            self.open_scanner()
        elif cmd == "c":
            self.close_scanner()
        elif cmd == "x":
            self.cart.clear_all()
            print("Cart cleared.")
        elif cmd == "r":
            print_receipt(self.cart)
        elif cmd.startswith("-"):
            if not self.cart.remove_by_code(cmd[1:]):
                print(f"{cmd[1:].strip()} is not in the cart.")
        else:
            self.cart.entry = line
            line_item = self.cart.submit_entry()
            if line_item is not None:
                print(f"Added: {line_item.name} x{line_item.quantity}   TOTAL: {self.cart.total:.2f}")
        return True

    async def run(self):
        print(HELP)
        try:
            while True:
                if self.creation.is_open:
                    await self.fill_draft()
                    continue
                try:
                    line = await asyncio.to_thread(input, "code> ")
                except EOFError:
                    break
                if not self.handle_command(line):
                    break
        finally:
            await self._stop_scanner()
            self.surface.unmount()
        print_receipt(self.cart)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Barcode scanning POS terminal")
    parser.add_argument("--catalog", default=config.CATALOG_CSV, help="CSV file the catalog is seeded from")
    parser.add_argument("--camera-index", type=int, default=None, help="Device index for the 'any camera' tier")
    parser.add_argument("--no-audio", action="store_true", help="Do not beep on scans")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    catalog = ProductCatalog(args.catalog)
    terminal = PosTerminal(
        catalog,
        camera=CameraService(any_index=args.camera_index),
        surface=PreviewWindow("POS Scanner"),
        decoder=BarcodeDecoder(),
        audio=AudioService(enabled=not args.no_audio),
    )
    asyncio.run(terminal.run())


if __name__ == "__main__":
    main()
