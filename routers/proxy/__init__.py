"""Audio byte-stream proxy endpoint."""

from routers.proxy._client import close_client, get_client
from routers.proxy._streaming import router

__all__ = [
    "router",
    "get_client",
    "close_client",
]
