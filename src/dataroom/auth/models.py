"""
dataroom.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity. `id` is stable across sessions of the same
    underlying identity.
    """

    id: str
    anonymous: bool = False


@dataclass(frozen=True, slots=True)
class ResolvedIdentity:
    principal: Principal
    access_token: str
