"""Deterministic key-to-shard routing.

Every key is hashed with MD5, the first 8 bytes of the digest are read as an
unsigned big-endian integer and reduced modulo the shard count. The result
depends only on the key and the shard count, so it is stable across process
restarts (unlike ``hash()``, which is salted per process).

Routing Diagram
===============
::
    "abc123" ──► md5 ──► e99a18c428cb38d5... ──► first 8 bytes ──► int % N ──► shard

Key Behaviours
===============
- Changing the shard count remaps most keys; there is no rebalancing.
- A shard count below 1 is a configuration error raised at construction.
"""

import hashlib

__all__ = ["ShardRouter"]

_PREFIX_BYTES = 8


class ShardRouter:
    def __init__(self, shard_count: int):
        if not isinstance(shard_count, int) or shard_count < 1:
            raise ValueError(f"shard_count must be a positive integer, got {shard_count!r}")
        self._shard_count = shard_count

    @property
    def shard_count(self) -> int:
        return self._shard_count

    def route(self, key: str) -> int:
        assert isinstance(key, str), f"key must be str, got {type(key).__name__}"
        digest = hashlib.md5(key.encode("utf-8")).digest()
        return int.from_bytes(digest[:_PREFIX_BYTES], "big") % self._shard_count

    def __repr__(self) -> str:
        return f"<ShardRouter(shard_count={self._shard_count})>"
