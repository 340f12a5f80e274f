"""
Request handlers.

A handler is any callable taking an HTTPRequest and returning an
HTTPResponse:

    def handle_orders(request: HTTPRequest) -> HTTPResponse:
        return ok("Handling incoming orders..✅")
"""

from .acknowledgments import (
    ORDERS_ACK,
    USERS_ACK,
    handle_orders,
    handle_users,
    register_default_routes,
)

__all__ = [
    "ORDERS_ACK",
    "USERS_ACK",
    "handle_orders",
    "handle_users",
    "register_default_routes",
]
