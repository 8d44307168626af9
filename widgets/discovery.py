import asyncio
from typing import Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from core.cache import ProductDetailCache, RemoteWishlistCache
from core.gateway import MutationGateway
from core.identity import parse_config
from core.logger import get_logger

from .button import ButtonController
from .page import PageController
from .render import fragment

logger = get_logger(__name__)

BUTTON_ATTR = "data-wishlist-button"
PAGE_ATTR = "data-wishlist-page"
CONFIG_ATTR = "data-wishlist-config"
READY_ATTR = "data-wishlist-ready"
REMOVE_ATTR = "data-wishlist-remove"
ITEM_ID_ATTR = "data-wishlist-item-id"

MARKER_SELECTOR = f"[{BUTTON_ATTR}], [{PAGE_ATTR}]"

Controller = Union[ButtonController, PageController]


def _is_marker(node) -> bool:
    return isinstance(node, Tag) and (node.has_attr(BUTTON_ATTR) or node.has_attr(PAGE_ATTR))


class DiscoveryEngine:
    """
    Turns widget markers in a document into live controllers, once each.

    `scan()` covers a whole document or subtree. Content attached later goes
    through `insert()` or `node_added()`, which scan just the new subtree.
    Hydration runs as tasks on the current event loop; `settle()` waits for
    all of them.
    """

    def __init__(self, cache: RemoteWishlistCache, details: ProductDetailCache, gateway: MutationGateway):
        self.cache = cache
        self.details = details
        self.gateway = gateway
        self._controllers: Dict[int, Tuple[Tag, Controller]] = {}
        self._tasks = set()

    def scan(self, root: Union[BeautifulSoup, Tag]) -> List[Controller]:
        nodes = [root] if _is_marker(root) else []
        nodes.extend(root.select(MARKER_SELECTOR))
        started = []
        for node in nodes:
            controller = self._init(node)
            if controller is not None:
                started.append(controller)
        if started:
            logger.debug("Discovered %d wishlist widgets.", len(started))
        return started

    def node_added(self, node) -> List[Controller]:
        if not isinstance(node, Tag):
            return []
        return self.scan(node)

    def insert(self, parent: Tag, content: Union[str, Tag]) -> List[Controller]:
        """Attach new content under `parent` and initialize any markers in it."""
        nodes = fragment(content) if isinstance(content, str) else [content]
        started = []
        for node in nodes:
            parent.append(node)
            started.extend(self.node_added(node))
        return started

    def _init(self, node: Tag) -> Optional[Controller]:
        if node.get(READY_ATTR) == "true":
            return None
        # Flag first so a rescan during hydration cannot initialize twice
        node[READY_ATTR] = "true"

        config = parse_config(node.get(CONFIG_ATTR))
        if node.has_attr(BUTTON_ATTR):
            controller = ButtonController(node, config, self.cache, self.gateway)
        else:
            controller = PageController(node, config, self.cache, self.details, self.gateway)
        self._controllers[id(node)] = (node, controller)
        self._schedule(controller.hydrate())
        return controller

    def _schedule(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Task"):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Wishlist widget hydration failed", exc_info=task.exception())

    async def settle(self):
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def controller_for(self, node: Tag) -> Optional[Controller]:
        current = node
        while current is not None:
            entry = self._controllers.get(id(current))
            if entry is not None and entry[0] is current:
                return entry[1]
            current = current.parent
        return None

    @property
    def controllers(self) -> List[Controller]:
        return [controller for _, controller in self._controllers.values()]

    async def click(self, node: Tag) -> bool:
        """Deliver a click on `node` to the widget that owns it."""
        controller = self.controller_for(node)
        if isinstance(controller, ButtonController):
            return await controller.click()
        if isinstance(controller, PageController):
            current = node
            while current is not None and current is not controller.node:
                if current.has_attr(REMOVE_ATTR):
                    return await controller.remove(current.get(ITEM_ID_ATTR, ""))
                current = current.parent
        return False
