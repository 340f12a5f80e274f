"""
Acknowledgment handlers for /orders and /users.

Each handler is stateless. It returns the same fixed plain-text body for
every request and method, and does nothing else.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok
from ..http.router import Router


ORDERS_ACK = "Handling incoming orders..✅"
USERS_ACK = "Handling users..✅"


def handle_orders(request: HTTPRequest) -> HTTPResponse:
    return ok(ORDERS_ACK)


def handle_users(request: HTTPRequest) -> HTTPResponse:
    return ok(USERS_ACK)


def register_default_routes(router: Router) -> Router:
    """Bind /orders and /users on the given router and return it."""
    router.register("/orders", handle_orders)
    router.register("/users", handle_users)
    return router
