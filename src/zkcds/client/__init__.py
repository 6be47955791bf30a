"""Client-side components for private contact discovery."""
from zkcds.client.crypto import CryptoClient, QuerySession
from zkcds.client.search import DiscoveryClient

__all__ = ["CryptoClient", "QuerySession", "DiscoveryClient"]
