import csv
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Product:
    code: str
    name: str
    description: str
    unit_price: Decimal

    def __post_init__(self):
        if not self.code:
            raise ValueError("product code must not be empty")
        if not self.unit_price.is_finite() or self.unit_price <= 0:
            raise ValueError(f"unit price must be > 0, got {self.unit_price}")


class ProductCatalog:
    """
    Barcode -> Product lookup for the whole process lifetime.

    Seeded once, either from a list of products or from the CSV file.
    Only ProductCreationFlow writes to it afterwards.
    """

    def __init__(self, csv_path: str = None, seed: Iterable[Product] = None):
        self.items: Dict[str, Product] = {}
        if seed is not None:
            for product in seed:
                self.items[product.code] = product
        else:
            self._load(csv_path or config.CATALOG_CSV)

    def _load(self, csv_path: str):
        with open(csv_path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)

            # Identify columns safely
            fieldnames = reader.fieldnames
            code_col = next(fn for fn in fieldnames if "Code" in fn)
            name_col = next(fn for fn in fieldnames if "Name" in fn)
            desc_col = next(fn for fn in fieldnames if "Description" in fn)
            price_col = next(fn for fn in fieldnames if "Price" in fn)

            for row in reader:
                code = row[code_col].strip()
                self.items[code] = Product(
                    code=code,
                    name=row[name_col].strip(),
                    description=row[desc_col].strip(),
                    unit_price=Decimal(row[price_col].strip()),
                )

        logger.info("Loaded %d products from %s", len(self.items), csv_path)

    def get(self, code: str) -> Optional[Product]:
        """Return the Product for code or None."""
        return self.items.get(code)

    def put(self, product: Product):
        """Insert or replace the whole record for product.code."""
        if product.code in self.items:
            logger.info("Replacing catalog entry %s", product.code)
        self.items[product.code] = product

    def __contains__(self, code):
        return code in self.items

    def __len__(self):
        return len(self.items)
