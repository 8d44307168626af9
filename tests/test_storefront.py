import asyncio

import pytest

import storefront
from core.models import GuestEntry
from tests.conftest import PAGE_SLOTS, marker


def _write_page(tmp_path, body):
    path = tmp_path / "product.html"
    path.write_text(f"<html><body>{body}</body></html>", encoding="utf-8")
    return str(path)


def test_hydrate_page_writes_widget_state(tmp_path, runtime, fake_api):
    fake_api.wishlists["C1"] = [{"id": "I1", "productId": "P1", "variantId": "V1"}]
    path = _write_page(tmp_path, marker("button", {"customerId": "C1", "productId": "P1", "variantId": "V1"}))
    out = tmp_path / "out.html"

    document = storefront.load_page(path)
    asyncio.run(storefront.hydrate_page(document, runtime))
    storefront.write_page(document, str(out))

    html = out.read_text(encoding="utf-8")
    assert 'aria-pressed="true"' in html
    assert 'data-wishlist-ready="true"' in html


def test_merge_runs_before_discovery_when_enabled(tmp_path, monkeypatch, runtime, fake_api, guest_store):
    monkeypatch.setattr(storefront, "MERGE_GUEST_ON_LOGIN", True)
    guest_store.add("P1", "V1")
    path = _write_page(tmp_path, marker("page", {"customerId": "C1"}, PAGE_SLOTS))

    document = storefront.load_page(path)
    asyncio.run(storefront.hydrate_page(document, runtime))

    assert guest_store.list() == []
    assert fake_api.count("merge") == 1
    # Merged list is already cached, so the page needs no fetch
    assert fake_api.count("fetch") == 0
    assert len(document.select("[data-wishlist-row]")) == 1


def test_merge_disabled_keeps_guest_entries(tmp_path, runtime, fake_api, guest_store):
    guest_store.add("P1", "V1")
    path = _write_page(tmp_path, marker("page", {"customerId": "C1"}, PAGE_SLOTS))

    asyncio.run(storefront.hydrate_page(storefront.load_page(path), runtime))

    assert guest_store.list() == [GuestEntry("P1", "V1")]
    assert fake_api.count("merge") == 0


def test_missing_page_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        storefront.load_page(str(tmp_path / "nope.html"))
    assert exc.value.code == 1
