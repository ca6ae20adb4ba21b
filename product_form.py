import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from catalog import Product, ProductCatalog
from errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ProductDraft:
    """The four form fields plus the last validation message."""
    code: str
    name: str = ""
    description: str = ""
    price_text: str = ""
    error: Optional[str] = None


def parse_price(text: str) -> Decimal:
    """Parse a price typed by the operator. Accepts "12,50" as well as "12.50"."""
    clean = str(text or "").strip().replace(",", ".")
    if not clean:
        raise ValidationError("Price is required", field="price")
    try:
        price = Decimal(clean)
    except InvalidOperation:
        raise ValidationError(f"Invalid price: {text}", field="price")
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price must be greater than zero", field="price")
    return price


class ProductCreationFlow:
    """
    Short-lived form opened when a code is not in the catalog.

    Saving writes the product to the catalog and hands the code back to
    the cart so the new product shows up as one unit.
    """

    def __init__(self, catalog: ProductCatalog, add_to_cart: Callable[[str], object] = None):
        self.catalog = catalog
        self.add_to_cart = add_to_cart
        self.draft: Optional[ProductDraft] = None

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    def start(self, code: str) -> ProductDraft:
        if self.draft is not None:
            logger.info("Discarding unsaved draft for %s", self.draft.code)
        self.draft = ProductDraft(code=code)
        logger.info("New product draft for %s", code)
        return self.draft

    def validate(self, draft: ProductDraft) -> Product:
        code = draft.code.strip()
        name = draft.name.strip()
        if not code:
            raise ValidationError("Code is required", field="code")
        if not name:
            raise ValidationError("Name is required", field="name")
        return Product(
            code=code,
            name=name,
            description=draft.description.strip(),
            unit_price=parse_price(draft.price_text),
        )

    def save(self) -> Optional[Product]:
        """
        Commit the draft. On a validation failure the message is left on
        draft.error, the draft stays open and None is returned.
        """
        draft = self.draft
        if draft is None:
            return None

        try:
            product = self.validate(draft)
        except ValidationError as e:
            draft.error = str(e)
            logger.info("Draft for %s not saved: %s", draft.code, e)
            return None

        self.catalog.put(product)
        self.draft = None
        logger.info("Saved product %s (%s)", product.code, product.name)

        if self.add_to_cart is not None:
            self.add_to_cart(product.code)
        return product

    def cancel(self):
        if self.draft is not None:
            logger.info("Cancelled draft for %s", self.draft.code)
        self.draft = None
