"""
                QRAR Restaurant Ordering Platform

Multi-tenant backend for QR-code restaurant ordering: menu management,
customer orders with tax-aware pricing, loyalty artifacts and real-time
order notifications for merchant dashboards.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
