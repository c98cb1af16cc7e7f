"""
HTTP and WebSocket routers, one module per resource.
"""

from qrar.api import (
    categories,
    combo_deals,
    coupons,
    offers,
    orders,
    popups,
    products,
    realtime,
    restaurants,
    slider_images,
    users,
)

routers = [
    restaurants.router,
    categories.router,
    products.router,
    orders.router,
    users.router,
    offers.router,
    coupons.router,
    combo_deals.router,
    popups.router,
    slider_images.router,
    realtime.router,
]

__all__ = ["routers"]
