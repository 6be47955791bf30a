"""Server-side components for private contact discovery."""
from zkcds.server.index import Index, IndexBuilder
from zkcds.server.store import ServerSecret, ServerStore
from zkcds.server.compute import QueryEngine
from zkcds.server.api import app, create_app, run_server

__all__ = [
    "Index",
    "IndexBuilder",
    "ServerSecret",
    "ServerStore",
    "QueryEngine",
    "app",
    "create_app",
    "run_server",
]
