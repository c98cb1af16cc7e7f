from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest

from qrar.models import ModeOfOrder
from qrar.services.notifications import (
    build_order_links,
    customer_order_message,
    format_phone,
    restaurant_order_message,
    whatsapp_link,
)


@pytest.fixture
def order():
    return SimpleNamespace(
        id=10,
        order_no=3,
        final_total=354.0,
        table_number=None,
        mode_of_order=ModeOfOrder.TAKEAWAY,
        items=[
            SimpleNamespace(product_name="Masala Dosa", quantity=2, unit_price=120.0),
            SimpleNamespace(product_name="Filter Coffee", quantity=1, unit_price=114.0),
        ],
    )


@pytest.fixture
def restaurant():
    return SimpleNamespace(name="Spice Route", number="9876543210")


@pytest.fixture
def customer():
    return SimpleNamespace(name="Asha", phone="90000 00001")


@pytest.mark.parametrize(
    "phone, expected",
    [
        ("9876543210", "+919876543210"),
        ("98765 43210", "+919876543210"),
        ("+447911123456", "+447911123456"),
    ],
)
def test_format_phone(phone, expected):
    assert format_phone(phone) == expected


def test_format_phone_with_explicit_country_code():
    assert format_phone("2025550123", country_code="+1") == "+12025550123"


def test_whatsapp_link_encodes_message():
    link = whatsapp_link("9876543210", "Order #1\nTotal: ₹100 & more")

    parsed = urlparse(link)
    assert parsed.netloc == "wa.me"
    assert parsed.path == "/919876543210"
    assert parse_qs(parsed.query)["text"] == ["Order #1\nTotal: ₹100 & more"]


def test_customer_message(order, restaurant):
    message = customer_order_message(order, restaurant)

    assert message.startswith("New Order #3")
    assert "2x Masala Dosa - ₹240" in message
    assert "Total: ₹354" in message
    assert "Spice Route" in message


def test_restaurant_message_without_table(order, customer):
    message = restaurant_order_message(order, customer)

    assert "Customer: Asha" in message
    assert "Mode: Takeaway" in message
    assert "Table: N/A" in message


def test_links_are_addressed_to_each_party(order, restaurant, customer):
    links = build_order_links(order, restaurant, customer).to_dict()

    assert links["customer_whatsapp_link"].startswith("https://wa.me/919000000001?text=")
    assert links["restaurant_whatsapp_link"].startswith("https://wa.me/919876543210?text=")
