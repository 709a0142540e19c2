from decimal import Decimal
import pytest

from boutique.payments.line_items import build_line_items, is_https_url
from boutique.errors import BadRequest


def _item(name="Casque", price="33.99", qty=2, image_url=None, description="Sans fil"):
    return {
        "product_id": "p1",
        "quantity": qty,
        "product": {"id": "p1", "name": name, "description": description, "price": Decimal(price), "image_url": image_url},
    }

def test_line_item_amounts_in_minor_units():
    items = build_line_items({"items": [_item()]}, "zar")
    assert items == [{
        "quantity": 2,
        "price_data": {
            "currency": "zar",
            "unit_amount": 3399,
            "product_data": {"name": "Casque", "description": "Sans fil"},
        },
    }]

def test_image_only_for_wellformed_https_urls():
    items = build_line_items({"items": [
        _item(image_url="https://cdn.example.com/a.png"),
        _item(image_url="http://cdn.example.com/a.png"),
        _item(image_url="https://"),
        _item(image_url="/static/a.png"),
    ]}, "zar")
    images = [it["price_data"]["product_data"].get("images") for it in items]
    assert images == [["https://cdn.example.com/a.png"], None, None, None]

def test_skips_missing_products_and_bad_quantities():
    cart = {"items": [_item(), {"product_id": "gone", "quantity": 1, "product": None}, _item(qty=0)]}
    assert len(build_line_items(cart, "zar")) == 1

def test_no_valid_line_raises_bad_request():
    with pytest.raises(BadRequest):
        build_line_items({"items": [{"product_id": "gone", "quantity": 1, "product": None}]}, "zar")

@pytest.mark.parametrize("url,expected", [
    ("https://example.com/x.jpg", True),
    ("https://", False),
    ("ftp://example.com", False),
    ("", False),
    (None, False),
])
def test_is_https_url(url, expected):
    assert is_https_url(url) is expected
