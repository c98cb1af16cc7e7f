"""
WhatsApp Notification Links

Orders produce two click-to-chat links (wa.me): one addressed to the
customer and one to the restaurant. Nothing is sent from the server; the
links travel with the order response and the order:created event.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from qrar.core.config import get_settings
from qrar.models import Order, Restaurant, User

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me"


@dataclass
class OrderNotificationLinks:
    customer: str
    restaurant: str

    def to_dict(self) -> dict[str, str]:
        return {
            "customer_whatsapp_link": self.customer,
            "restaurant_whatsapp_link": self.restaurant,
        }


def format_phone(phone: str, country_code: Optional[str] = None) -> str:
    """Strip spaces and prefix the default country code when none is given."""
    formatted = "".join(phone.split())
    if not formatted.startswith("+"):
        formatted = (country_code or get_settings().default_country_code) + formatted
    return formatted


def whatsapp_link(phone: str, message: str) -> str:
    """Build a wa.me link for ``phone`` with ``message`` prefilled."""
    # wa.me wants the number without the leading plus
    number = format_phone(phone).lstrip("+")
    return f"{WHATSAPP_BASE_URL}/{number}?text={quote(message, safe='')}"


def _order_lines(order: Order) -> str:
    return "\n".join(
        f"{item.quantity}x {item.product_name} - ₹{item.unit_price * item.quantity:g}"
        for item in order.items
    )


def customer_order_message(order: Order, restaurant: Restaurant) -> str:
    return (
        f"New Order #{order.order_no}\n\n"
        f"Items:\n{_order_lines(order)}\n\n"
        f"Total: ₹{order.final_total:g}\n\n"
        f"Thank you for ordering from {restaurant.name}!"
    )


def restaurant_order_message(order: Order, customer: User) -> str:
    table = order.table_number if order.table_number is not None else "N/A"
    return (
        f"New Order #{order.order_no}\n\n"
        f"Customer: {customer.name}\n"
        f"Phone: {customer.phone}\n\n"
        f"Items:\n{_order_lines(order)}\n\n"
        f"Total: ₹{order.final_total:g}\n\n"
        f"Mode: {order.mode_of_order.value}\n"
        f"Table: {table}"
    )


def build_order_links(order: Order, restaurant: Restaurant, customer: User) -> OrderNotificationLinks:
    links = OrderNotificationLinks(
        customer=whatsapp_link(customer.phone, customer_order_message(order, restaurant)),
        restaurant=whatsapp_link(restaurant.number, restaurant_order_message(order, customer)),
    )
    logger.debug(f"WhatsApp links generated for order #{order.id}")
    return links
