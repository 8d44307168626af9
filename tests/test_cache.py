import asyncio

from core.cache import Pending, ProductDetailCache, RemoteWishlistCache, Resolved
from core.identity import WidgetConfig, resolve_identity
from core.models import ProductDetail, WishlistItem

CUSTOMER = resolve_identity(WidgetConfig(customer_id="C1", shop_domain="shop.example"))


def _cache(fake_api):
    return RemoteWishlistCache(lambda base_url: fake_api)


def test_concurrent_gets_issue_one_fetch(fake_api):
    fake_api.wishlists["C1"] = [{"id": "I1", "productId": "P1", "variantId": "V1"}]
    cache = _cache(fake_api)

    async def _run():
        fake_api.fetch_gate = asyncio.Event()
        waiters = [asyncio.ensure_future(cache.get(CUSTOMER)) for _ in range(5)]
        await asyncio.sleep(0)
        assert isinstance(cache.peek("C1"), Pending)
        fake_api.fetch_gate.set()
        return await asyncio.gather(*waiters)

    results = asyncio.run(_run())
    assert fake_api.count("fetch") == 1
    assert all(r == results[0] for r in results)
    assert [it.id for it in results[0]] == ["I1"]
    assert isinstance(cache.peek("C1"), Resolved)


def test_resolved_entry_is_not_refetched(fake_api):
    cache = _cache(fake_api)

    async def _run():
        await cache.get(CUSTOMER)
        await cache.get(CUSTOMER)

    asyncio.run(_run())
    assert fake_api.count("fetch") == 1


def test_fetch_failure_resolves_empty_and_is_not_retried(fake_api):
    fake_api.fail_fetch = True
    cache = _cache(fake_api)

    async def _run():
        first = await cache.get(CUSTOMER)
        second = await cache.get(CUSTOMER)
        return first, second

    first, second = asyncio.run(_run())
    assert first == () and second == ()
    assert fake_api.count("fetch") == 1


def test_customers_are_cached_separately(fake_api):
    fake_api.wishlists["C2"] = [{"id": "I9", "productId": "P9", "variantId": "V9"}]
    cache = _cache(fake_api)
    other = resolve_identity(WidgetConfig(customer_id="C2"))

    async def _run():
        return await cache.get(CUSTOMER), await cache.get(other)

    mine, theirs = asyncio.run(_run())
    assert mine == ()
    assert [it.id for it in theirs] == ["I9"]
    assert fake_api.count("fetch") == 2


def test_apply_add_is_idempotent_and_needs_resolved_entry(fake_api):
    cache = _cache(fake_api)
    item = WishlistItem(id="I1", product_id="P1", variant_id="V1")

    cache.apply_add("C1", item)
    assert cache.peek("C1") is None

    asyncio.run(cache.get(CUSTOMER))
    cache.apply_add("C1", item)
    cache.apply_add("C1", item)
    assert cache.peek("C1").items == (item,)


def test_apply_remove_round_trip(fake_api):
    fake_api.wishlists["C1"] = [{"id": "I0", "productId": "P0", "variantId": "V0"}]
    cache = _cache(fake_api)
    before = asyncio.run(cache.get(CUSTOMER))

    cache.apply_add("C1", WishlistItem(id="I1", product_id="P1", variant_id="V1"))
    cache.apply_remove("C1", "I1")
    assert cache.peek("C1").items == before

    cache.apply_remove("C404", "I1")
    assert cache.peek("C404") is None


def test_replace_wins_over_in_flight_fetch(fake_api):
    fake_api.wishlists["C1"] = [{"id": "OLD", "productId": "P1", "variantId": "V1"}]
    cache = _cache(fake_api)
    merged = [WishlistItem(id="NEW", product_id="P2", variant_id="V2")]

    async def _run():
        fake_api.fetch_gate = asyncio.Event()
        waiter = asyncio.ensure_future(cache.get(CUSTOMER))
        await asyncio.sleep(0)
        cache.replace("C1", merged)
        fake_api.fetch_gate.set()
        return await waiter

    assert [it.id for it in asyncio.run(_run())] == ["NEW"]


def test_inventory_either_signal_means_in_stock():
    product = {
        "title": "Mug",
        "handle": "mug",
        "totalInventory": 0,
        "variants": [{"id": "gid://shopify/ProductVariant/11", "price": "12.50", "inventoryQuantity": 3}],
    }
    assert ProductDetail.from_product(product).in_stock is True

    product["variants"][0]["inventoryQuantity"] = 0
    assert ProductDetail.from_product(product).in_stock is False

    del product["variants"][0]["inventoryQuantity"]
    assert ProductDetail.from_product(product).in_stock is False

    product["totalInventory"] = 4
    assert ProductDetail.from_product(product).in_stock is True


def test_detail_derivation_uses_first_variant():
    detail = ProductDetail.from_product({
        "title": "Mug",
        "handle": "mug",
        "featuredImage": {"url": "https://cdn.example/mug.png", "altText": "A mug"},
        "variants": [
            {"id": "gid://shopify/ProductVariant/11", "price": "12.50"},
            {"id": "gid://shopify/ProductVariant/12", "price": "99.00"},
        ],
    })
    assert detail.price == "12.50"
    assert detail.variant_id == "11"
    assert detail.image_url == "https://cdn.example/mug.png"
    assert detail.image_alt == "A mug"


def test_product_detail_is_memoized_including_missing(fake_api):
    fake_api.products["P1"] = {"title": "Mug", "variants": [{"id": 1, "price": "5"}]}
    details = ProductDetailCache(lambda base_url: fake_api)

    async def _run():
        found = await asyncio.gather(*(details.get("P1", CUSTOMER) for _ in range(3)))
        missing = [await details.get("P404", CUSTOMER) for _ in range(2)]
        return found, missing

    found, missing = asyncio.run(_run())
    assert all(d is not None and d.title == "Mug" for d in found)
    assert missing == [None, None]
    assert fake_api.count("product") == 2


def test_product_detail_failure_becomes_tombstone(fake_api):
    fake_api.fail_products = True
    details = ProductDetailCache(lambda base_url: fake_api)

    async def _run():
        return await details.get("P1", CUSTOMER), await details.get("P1", CUSTOMER)

    assert asyncio.run(_run()) == (None, None)
    assert fake_api.count("product") == 1


def test_unexpected_detail_error_still_leaves_tombstone(fake_api):
    fake_api.product_error = RuntimeError("unexpected payload")
    details = ProductDetailCache(lambda base_url: fake_api)

    async def _run():
        first = await details.get("P1", CUSTOMER)
        fake_api.product_error = None
        fake_api.products["P1"] = {"title": "Mug"}
        return first, await details.get("P1", CUSTOMER)

    assert asyncio.run(_run()) == (None, None)
    assert fake_api.count("product") == 1
