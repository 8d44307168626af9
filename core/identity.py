# core/identity.py
import json
import os
from dataclasses import dataclass
from typing import Any

from .logger import get_logger
from .models import normalize_id

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = os.getenv("WISHLIST_API_BASE_URL", "http://localhost:3000/api").strip()

GUEST = "guest"
CUSTOMER = "customer"


@dataclass(frozen=True)
class WidgetConfig:
    customer_id: str = ""
    customer_email: str = ""
    product_id: str = ""
    variant_id: str = ""
    api_base_url: str = ""
    shop_domain: str = ""
    login_url: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "WidgetConfig":
        return cls(
            customer_id=normalize_id(raw.get("customerId")),
            customer_email=normalize_id(raw.get("customerEmail")),
            product_id=normalize_id(raw.get("productId")),
            variant_id=normalize_id(raw.get("variantId")),
            api_base_url=normalize_id(raw.get("apiBaseUrl")),
            shop_domain=normalize_id(raw.get("shopDomain")),
            login_url=normalize_id(raw.get("loginUrl")),
        )


@dataclass(frozen=True)
class Identity:
    kind: str
    customer_id: str = ""
    email: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    shop_domain: str = ""

    @property
    def is_guest(self) -> bool:
        return self.kind == GUEST


def parse_config(raw: Any) -> WidgetConfig:
    """
    Parse the JSON payload a widget marker carries.
    Anything unparsable yields an empty config, which resolves to a guest.
    """
    if isinstance(raw, dict):
        return WidgetConfig.from_dict(raw)
    if not raw:
        return WidgetConfig()
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.debug("Ignoring malformed widget config %r: %s", raw, e)
        return WidgetConfig()
    if not isinstance(data, dict):
        logger.debug("Widget config is not an object: %r", raw)
        return WidgetConfig()
    return WidgetConfig.from_dict(data)


def resolve_identity(config: WidgetConfig) -> Identity:
    base_url = (config.api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
    if not config.customer_id:
        return Identity(kind=GUEST, api_base_url=base_url, shop_domain=config.shop_domain)
    return Identity(
        kind=CUSTOMER,
        customer_id=config.customer_id,
        email=config.customer_email,
        api_base_url=base_url,
        shop_domain=config.shop_domain,
    )
