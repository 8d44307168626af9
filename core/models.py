# core/models.py
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

_NUMERIC_TAIL = re.compile(r"(\d+)$")


def normalize_id(value: Any) -> str:
    """Coerce any identifier to a string; None becomes ""."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def numeric_id(gid: Any) -> str:
    """
    Return the trailing numeric part of an id.

    "gid://shopify/ProductVariant/4242" -> "4242"; plain ids pass through.
    """
    text = normalize_id(gid)
    m = _NUMERIC_TAIL.search(text)
    return m.group(1) if m else text


@dataclass(frozen=True)
class WishlistItem:
    """
    A wishlist row as reported by the remote service.
    Guest rows have no server id; their `id` is synthesized as "product:variant".
    """
    id: str
    product_id: str
    variant_id: str = ""
    added_at: str = ""

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "WishlistItem":
        return cls(
            id=normalize_id(raw.get("id")),
            product_id=normalize_id(raw.get("productId")),
            variant_id=normalize_id(raw.get("variantId")),
            added_at=normalize_id(raw.get("addedAt")),
        )

    def matches(self, product_id: str, variant_id: str) -> bool:
        return self.product_id == product_id and self.variant_id == variant_id


@dataclass(frozen=True)
class GuestEntry:
    product_id: str
    variant_id: Optional[str] = None

    @classmethod
    def from_storage(cls, raw: Any) -> Optional["GuestEntry"]:
        if not isinstance(raw, dict):
            return None
        variant = raw.get("variantId")
        return cls(
            product_id=normalize_id(raw.get("productId")),
            variant_id=None if variant in (None, "") else normalize_id(variant),
        )

    def to_storage(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "variantId": self.variant_id}

    @property
    def key(self) -> Tuple[str, str]:
        return self.product_id, normalize_id(self.variant_id)

    def as_item(self) -> WishlistItem:
        variant = normalize_id(self.variant_id)
        return WishlistItem(
            id=f"{self.product_id}:{variant}",
            product_id=self.product_id,
            variant_id=variant,
        )


@dataclass(frozen=True)
class ProductDetail:
    """Display data for one product, derived from the detail lookup."""
    title: str
    handle: str
    image_url: str
    image_alt: str
    price: Optional[str]
    variant_id: str
    in_stock: bool

    @classmethod
    def from_product(cls, product: Dict[str, Any]) -> "ProductDetail":
        variants = product.get("variants")
        first = variants[0] if isinstance(variants, list) and variants else {}
        if not isinstance(first, dict):
            first = {}
        image = product.get("featuredImage")
        if not isinstance(image, dict):
            image = {}

        price = first.get("price")
        return cls(
            title=normalize_id(product.get("title")),
            handle=normalize_id(product.get("handle")),
            image_url=normalize_id(image.get("url")),
            image_alt=normalize_id(image.get("altText")),
            price=None if price is None else normalize_id(price),
            variant_id=numeric_id(first.get("id")) if first.get("id") else "",
            # Either signal is enough: some shops track stock per variant only
            in_stock=_positive(product.get("totalInventory"))
            or _positive(first.get("inventoryQuantity")),
        )


def _positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class MutationResult:
    success: bool
    item_id: Optional[str] = None
    error: str = ""


@dataclass
class ButtonState:
    wishlisted: bool = False
    wishlist_item_id: Optional[str] = None
    is_loading: bool = False
    hydrated: bool = False


@dataclass
class PageState:
    items: List[WishlistItem] = field(default_factory=list)
    error: str = ""
    is_loading: bool = False
