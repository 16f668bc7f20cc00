"""Routing adapter registry: pluggable route-planning engines."""

import os

_router_instance = None


def get_router():
    """Return the configured routing adapter (singleton).

    Uses FakeRouter by default. Set ROUTING_ADAPTER=osrm to call an OSRM
    server (OSRM_BASE_URL, defaulting to the public demo server).
    """
    global _router_instance
    if _router_instance is None:
        adapter = os.environ.get("ROUTING_ADAPTER", "fake")
        if adapter == "fake":
            from tracking.routing.fake_adapter import FakeRouter

            _router_instance = FakeRouter()
        elif adapter == "osrm":
            from tracking.routing.osrm_adapter import OSRMRouter

            _router_instance = OSRMRouter(base_url=os.environ.get("OSRM_BASE_URL", OSRMRouter.DEFAULT_BASE_URL))
        else:
            raise ValueError(f"Unknown routing adapter: {adapter}")
    return _router_instance


def reset_router():
    """Reset the router singleton (useful for testing)."""
    global _router_instance
    _router_instance = None
