import hashlib


class Md5Hasher:
    """
    Uniform bucket assignment for stable ids.

    Uses the full 128-bit MD5 digest reduced mod ``buckets`` so any
    runtime hashing the same UTF-8 bytes lands in the same bucket.
    """

    __slots__ = ("_buckets",)

    def __init__(self, buckets: int = 100) -> None:
        if buckets < 1:
            raise ValueError("buckets must be >= 1")

        self._buckets = buckets

    def uniform_bucket(self, stable_id: str) -> int:
        digest = hashlib.md5(stable_id.encode("utf-8"), usedforsecurity=False).digest()
        return int.from_bytes(digest, byteorder="big") % self._buckets
