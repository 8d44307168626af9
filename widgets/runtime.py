from typing import List, Optional

from bs4 import BeautifulSoup

import fetchers
from core.cache import ApiFactory, ProductDetailCache, RemoteWishlistCache
from core.gateway import MutationGateway
from core.identity import WidgetConfig, resolve_identity
from core.logger import get_logger
from core.storage import GuestStore

from .discovery import Controller, DiscoveryEngine

logger = get_logger(__name__)


class WishlistRuntime:
    """
    Shared state for one page: both caches, the guest store, the mutation
    gateway and the discovery engine. Build one per page and pass it around.
    """

    def __init__(self, api_for: ApiFactory = fetchers.api_for, guest_store: Optional[GuestStore] = None):
        self.cache = RemoteWishlistCache(api_for)
        self.details = ProductDetailCache(api_for)
        self.guest_store = guest_store if guest_store is not None else GuestStore()
        self.gateway = MutationGateway(api_for, self.cache, self.guest_store)
        self.discovery = DiscoveryEngine(self.cache, self.details, self.gateway)

    async def start(self, document: BeautifulSoup) -> List[Controller]:
        controllers = self.discovery.scan(document)
        await self.discovery.settle()
        return controllers

    async def merge_guest(self, config: WidgetConfig) -> bool:
        return await self.gateway.merge_guest(resolve_identity(config))
