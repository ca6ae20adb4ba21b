import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from catalog import ProductCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    code: str
    name: str
    description: str
    unit_price: Decimal
    quantity: int = 1

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class CartManager:
    """
    Owns the cart lines. Typed codes and scanned codes both end up in
    add_by_code, so quantities merge the same way whatever the input.
    """

    def __init__(self, catalog: ProductCatalog, on_miss: Callable[[str], None] = None):
        self.catalog = catalog
        self.on_miss = on_miss
        self.items: Dict[str, LineItem] = {}  # code -> LineItem, first-scan order
        self.entry = ""  # manual entry field

    def add_by_code(self, code) -> Optional[LineItem]:
        """
        Add one unit of code. Returns the updated line, or None when the
        input was blank or the code is not in the catalog.
        """
        clean = str(code or "").strip()
        if not clean:
            return None

        product = self.catalog.get(clean)
        if product is None:
            logger.info("Code %s not in catalog", clean)
            if self.on_miss is not None:
                self.on_miss(clean)
            return None

        item = self.items.get(clean)
        if item is not None:
            item = replace(item, quantity=item.quantity + 1)
        else:
            item = LineItem(
                code=product.code,
                name=product.name,
                description=product.description,
                unit_price=product.unit_price,
            )
        # Reassigning an existing key keeps its position
        self.items[clean] = item
        logger.info("Added %s x%d", item.name, item.quantity)
        return item

    def submit_entry(self) -> Optional[LineItem]:
        """Add whatever is in the entry field, then empty the field."""
        try:
            return self.add_by_code(self.entry)
        finally:
            self.entry = ""

    def remove_by_code(self, code: str) -> bool:
        """Drop the whole line for code, whatever its quantity."""
        removed = self.items.pop(str(code or "").strip(), None)
        if removed is not None:
            logger.info("Removed %s", removed.name)
        return removed is not None

    def clear_all(self):
        """Empty the cart and the entry field."""
        self.items.clear()
        self.entry = ""

    def get_lines(self) -> List[LineItem]:
        return list(self.items.values())

    def get_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items.values()), Decimal("0"))

    @property
    def total(self) -> Decimal:
        return self.get_total()

    @property
    def item_count(self) -> int:
        """Number of units, not lines."""
        return sum(item.quantity for item in self.items.values())

    def __len__(self):
        return len(self.items)
