from __future__ import annotations

"""Admission collaborators.

Before a run exists the manager needs two answers, both provided from outside
the runtime:

- who is acting and for which shop (``IdentityResolver``),
- whether that caller may start another run right now (``RateLimitGate``).

Identity travels as plain values (``CallerIdentity`` in, ``Identity`` out) so
concurrent runs never share ambient state. SQL-backed implementations live in
``shopfloor_ai.agent_core.repos.sql``.
"""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class CallerIdentity:
    """Unverified caller credentials as received by a transport.

    ``user_id`` is the authenticated user (None when anonymous);
    ``tenant_hint`` is an optional shop the caller asked to act for.
    """

    user_id: Optional[str] = None
    tenant_hint: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    """Resolved acting user and tenant (shop)."""

    tenant_id: str
    user_id: str


class IdentityResolver(Protocol):
    async def resolve(self, caller: CallerIdentity) -> Identity:
        """
        Resolve the caller.

        Raises:
            NotAuthenticated: no user could be established.
            NoActiveTenant: the user is not attached to a shop.
        """
        ...


class RateLimitGate(Protocol):
    async def allow(self, identity: Identity) -> bool:
        """Return False to refuse a new run for ``identity``."""
        ...
