from .button import ButtonController
from .discovery import DiscoveryEngine
from .page import PageController
from .runtime import WishlistRuntime

__all__ = ["ButtonController", "DiscoveryEngine", "PageController", "WishlistRuntime"]
