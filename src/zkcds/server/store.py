"""
Server-side state: the secret scalar d_S and the current Index.

Both are read-only while serving. A rebuild constructs the new Index off
to the side and swaps a single reference, so concurrent queries observe
either the old or the new index, never a partial one.
"""
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from zkcds.server.index import Index, IndexBuilder
from zkcds.shared.config import ProtocolConfig
from zkcds.shared.curve import random_scalar, scalar_from_bytes, scalar_to_bytes, validate_scalar
from zkcds.shared.errors import ConfigurationError
from zkcds.shared.protocol import Bucket
from zkcds.shared.utils import PhoneNumber

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass(frozen=True)
class ServerSecret:
    """
    The server secret d_S, owned by one server instance.

    Passed explicitly rather than held globally so several independent
    servers (tests, key rotation) can coexist.
    """
    scalar: int

    def __post_init__(self):
        validate_scalar(self.scalar)

    @classmethod
    def generate(cls) -> "ServerSecret":
        return cls(random_scalar())

    def __repr__(self) -> str:
        return "ServerSecret(<redacted>)"


class ServerStore:
    """
    Holds the Index and d_S for the process lifetime.

    Lookups take no lock: each reads the current index reference once.
    """

    def __init__(self, secret: ServerSecret, index: Index, config: Optional[ProtocolConfig] = None):
        """
        Args:
            secret: Server secret d_S
            index: Index built with the same secret
            config: Protocol parameters used for rebuilds
        """
        self._secret = secret
        self._index = index
        self._rebuild_lock = threading.Lock()
        self.config = config or ProtocolConfig(prefix_bits=index.prefix_bits)

        if self.config.prefix_bits != index.prefix_bits:
            raise ConfigurationError(
                "Index prefix width does not match configuration",
                details={"index": index.prefix_bits, "config": self.config.prefix_bits},
            )

    @classmethod
    def build(
        cls,
        users: Mapping[PhoneNumber, str],
        config: Optional[ProtocolConfig] = None,
        secret: Optional[ServerSecret] = None,
    ) -> "ServerStore":
        """Create a store with a fresh (or given) secret and an index of users."""
        config = config or ProtocolConfig()
        secret = secret or ServerSecret.generate()
        index = IndexBuilder(secret.scalar, config).build(users)
        return cls(secret, index, config)

    @property
    def index(self) -> Index:
        """Current index snapshot."""
        return self._index

    @property
    def prefix_bits(self) -> int:
        return self._index.prefix_bits

    def lookup_bucket(self, prefix: int) -> Bucket:
        return self._index.bucket(prefix)

    def get_secret_scalar(self) -> int:
        """For the query engine only. Never expose externally."""
        return self._secret.scalar

    def rebuild(self, users: Mapping[PhoneNumber, str]) -> Index:
        """
        Rebuild the index from a fresh source map and swap it in atomically.

        Returns:
            The new index
        """
        with self._rebuild_lock:
            index = IndexBuilder(self._secret.scalar, self.config).build(users)
            self._index = index
        logger.info("Index swapped: %d entries", index.num_entries)
        return index

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "version": STATE_VERSION,
            "secret": scalar_to_bytes(self._secret.scalar).hex(),
            "config": {
                "prefix_bits": self.config.prefix_bits,
                "dst": self.config.dst.hex(),
                "max_encoding_attempts": self.config.max_encoding_attempts,
                "encoding_policy": self.config.encoding_policy.value,
            },
            "index": self._index.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServerStore":
        if not isinstance(data, dict):
            raise ConfigurationError("Corrupt server state")
        if data.get("version") != STATE_VERSION:
            raise ConfigurationError(
                "Unsupported state version", details={"version": data.get("version")}
            )
        try:
            secret = ServerSecret(scalar_from_bytes(bytes.fromhex(data["secret"])))
            cfg = data["config"]
            config = ProtocolConfig(
                prefix_bits=int(cfg["prefix_bits"]),
                dst=bytes.fromhex(cfg["dst"]),
                max_encoding_attempts=int(cfg["max_encoding_attempts"]),
                encoding_policy=cfg["encoding_policy"],
            )
            index = Index.from_dict(data["index"])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError("Corrupt server state", cause=e)
        return cls(secret, index, config)

    def save(self, path: Union[str, Path]) -> None:
        """Write state to path atomically (temp file + rename)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self.to_dict(), f)
            os.replace(tmp, path)
        except BaseException:
            os.unlink(tmp)
            raise
        # Restrict to owner: the file holds d_S
        os.chmod(path, 0o600)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ServerStore":
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                "Cannot read server state", details={"path": str(path)}, cause=e
            )
        store = cls.from_dict(data)
        logger.info("Loaded server state: %r", store.index)
        return store
