"""
                        Services Module

Business logic kept out of the routers. External services follow the
hybrid pattern: a Mock (development) and a Real (production) implementation
behind one factory function.

Services:
    - pricing: Order subtotal, tax and total for the three tax modes
    - order_workflow: Allowed order status transitions
    - order_numbers: Per-restaurant daily order numbers
    - orders: Order placement and status updates
    - analytics: Dashboard revenue, sales and customer aggregations
    - notifications: WhatsApp click-to-chat links for new orders
    - media: Image hosting (Mock / Cloudinary)
    - realtime: Order event broker (memory / Redis)
"""
