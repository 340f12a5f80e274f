"""
=============================================================================
URL ROUTER
=============================================================================

An explicit, caller-owned route table mapping exact paths to handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request  (any method)                                     │
    │   GET /orders                                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────────────────────────────────┐                  │
    │   │  ROUTER (built at startup, read-only after)  │                  │
    │   │                                              │                  │
    │   │   /orders  → handle_orders     ← MATCH       │                  │
    │   │   /users   → handle_users                    │                  │
    │   └──────────────────────────────────────────────┘                  │
    │        │                                                             │
    │        ▼                                                             │
    │   handle_orders(request)        anything else → 404                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Rules:
- Lookup is by exact path. "/orders/" and "/Orders" do not match "/orders".
- Methods are not restricted; a registered path answers every method.
- Registering a path that already exists REPLACES its handler
  (last writer wins). This is intentional, not a validation error.

There is no module-level default router. Whoever builds the server
creates a Router and passes it in.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)

# A handler takes a request and returns a response.
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass(frozen=True)
class Route:
    """One entry of the route table."""

    path: str
    handler: Handler

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__name__", repr(self.handler))


class Router:
    """
    Exact-path request router.

    Usage:
        router = Router()

        router.register("/orders", handle_orders)

        @router.route("/users")
        def handle_users(request):
            return ok("Handling users..✅")

        response = router.handle(request)
    """

    def __init__(self):
        # Insertion order is kept only for listing; lookup is by key.
        self._routes: Dict[str, Route] = {}

    def register(self, path: str, handler: Handler) -> Route:
        """
        Associate a path with a handler.

        Args:
            path: Exact request path, starting with "/".
            handler: Callable taking an HTTPRequest, returning an HTTPResponse.

        Returns:
            The new Route.

        Raises:
            ValueError: If the path does not start with "/" or the handler
                        is not callable.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")
        if not callable(handler):
            raise ValueError(f"Handler for {path} is not callable")

        route = Route(path=path, handler=handler)
        previous = self._routes.get(path)
        self._routes[path] = route

        if previous is not None:
            logger.debug(
                f"Route {path} re-registered: {previous.handler_name} replaced by {route.handler_name}"
            )
        return route

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.register(path, handler)
            return handler
        return decorator

    def match(self, path: str) -> Optional[Route]:
        """Return the route registered for exactly this path, or None."""
        return self._routes.get(path)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch a request to its handler, or answer 404."""
        route = self.match(request.path)
        if route is None:
            return not_found()
        return route.handler(request)

    def routes(self) -> List[Route]:
        """All routes in registration order."""
        return list(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, path: str) -> bool:
        return path in self._routes
