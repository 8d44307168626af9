from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag
from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.models import ProductDetail, WishlistItem

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

UNAVAILABLE = "Unavailable"


def _price_to_str(price: Optional[str], currency_symbol: str = "$") -> str:
    if price is None or price == "":
        return UNAVAILABLE
    try:
        return f"{currency_symbol}{float(price):.2f}"
    except ValueError:
        return price


def fragment(html: str) -> List[Tag]:
    """Parse an HTML snippet into detached top-level tags."""
    soup = BeautifulSoup(html, "html.parser")
    return [node.extract() for node in list(soup.contents) if isinstance(node, Tag)]


def render_row(item: WishlistItem, detail: Optional[ProductDetail]) -> str:
    template = env.get_template("wishlist_row.html")
    if detail is None:
        ctx = {
            "title": f"Product {item.product_id}",
            "handle": "",
            "image_url": "",
            "image_alt": "",
            "price_str": UNAVAILABLE,
            "stock_str": "",
            "stock_class": "",
            "variant_id": item.variant_id,
        }
    else:
        ctx = {
            "title": detail.title or f"Product {item.product_id}",
            "handle": detail.handle,
            "image_url": detail.image_url,
            "image_alt": detail.image_alt or detail.title,
            "price_str": _price_to_str(detail.price),
            "stock_str": "In stock" if detail.in_stock else "Out of stock",
            "stock_class": "in" if detail.in_stock else "out",
            "variant_id": item.variant_id or detail.variant_id,
        }
    ctx.update(item_id=item.id, added_at=item.added_at)
    return template.render(**ctx)


def render_login(login_url: str) -> str:
    return env.get_template("wishlist_login.html").render(login_url=login_url)


def set_hidden(tag: Optional[Tag], hidden: bool):
    if tag is None:
        return
    if hidden:
        tag["hidden"] = ""
    else:
        tag.attrs.pop("hidden", None)


def set_text(tag: Optional[Tag], text: str):
    if tag is None:
        return
    tag.string = text
    set_hidden(tag, not text)


def set_disabled(tag: Tag, disabled: bool):
    if disabled:
        tag["disabled"] = ""
    else:
        tag.attrs.pop("disabled", None)


def toggle_class(tag: Tag, name: str, on: bool):
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    classes = [c for c in classes if c != name]
    if on:
        classes.append(name)
    if classes:
        tag["class"] = classes
    else:
        tag.attrs.pop("class", None)
