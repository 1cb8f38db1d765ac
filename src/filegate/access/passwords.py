"""Password hashing for share links.

``SharingService`` depends only on the :class:`PasswordHasher` protocol, so
the algorithm can change without touching the link lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from passlib.context import CryptContext

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_SCHEMES = ("pbkdf2_sha256", "bcrypt")


@runtime_checkable
class PasswordHasher(Protocol):
    """One-way salted password hash with verification."""

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


class PasslibHasher:
    """:class:`PasswordHasher` backed by a passlib ``CryptContext``.

    The first scheme hashes new passwords; the rest are accepted for
    verification only.
    """

    def __init__(self, schemes: Sequence[str] = DEFAULT_SCHEMES) -> None:
        self._context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # unknown or malformed hash
            return False
