"""Domain models for authenticated users."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserInfo:
    """Identity resolved from a verified ID token."""

    email: str
    name: str | None = None
    picture: str | None = None
