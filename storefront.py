import asyncio
import os
import sys
from typing import Optional

from bs4 import BeautifulSoup

from core.identity import parse_config
from core.logger import get_logger
from widgets import WishlistRuntime
from widgets.discovery import BUTTON_ATTR, CONFIG_ATTR, PAGE_ATTR

logger = get_logger(__name__)

PAGE_PATH = os.getenv("PAGE_PATH", "")
OUTPUT_PATH = os.getenv("OUTPUT_PATH", "")
MERGE_GUEST_ON_LOGIN = os.getenv("MERGE_GUEST_ON_LOGIN", "false").lower() == "true"


def load_page(path: str) -> BeautifulSoup:
    if not path or not os.path.exists(path):
        logger.error("Page file not found at %r", path)
        raise SystemExit(1)
    with open(path, "r", encoding="utf-8") as f:
        return BeautifulSoup(f.read(), "html.parser")


def write_page(document: BeautifulSoup, path: str = OUTPUT_PATH) -> None:
    html = str(document)
    if not path:
        sys.stdout.write(html)
        return
    with open(path, "w", encoding="utf-8") as f:
        f.write(html)
    logger.info("Wrote hydrated page to %s", path)


async def hydrate_page(document: BeautifulSoup, runtime: Optional[WishlistRuntime] = None) -> WishlistRuntime:
    runtime = runtime or WishlistRuntime()

    if MERGE_GUEST_ON_LOGIN:
        # The first customer-bearing widget identifies the shopper
        for node in document.select(f"[{BUTTON_ATTR}], [{PAGE_ATTR}]"):
            config = parse_config(node.get(CONFIG_ATTR))
            if config.customer_id:
                await runtime.merge_guest(config)
                break

    controllers = await runtime.start(document)
    logger.info("Hydrated %d wishlist widgets.", len(controllers))
    return runtime


def run_once(path: str = PAGE_PATH) -> int:
    document = load_page(path)
    asyncio.run(hydrate_page(document))
    write_page(document)
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(run_once(sys.argv[1] if len(sys.argv) > 1 else PAGE_PATH))
    except Exception as e:
        logger.exception("Fatal storefront wishlist error: %s", e)
        raise SystemExit(2)
