"""Cached token model."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionToken:
    """A generated token bound to a content binding."""
    content_binding: str
    token: str
    expires_at: datetime

    def __post_init__(self):
        if self.expires_at.tzinfo is None:
            object.__setattr__(self, "expires_at", self.expires_at.replace(tzinfo=timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once expires_at has been reached."""
        return self.expires_at <= (now or utc_now())

    def to_dict(self) -> dict[str, str]:
        return {
            "contentBinding": self.content_binding,
            "poToken": self.token,
            "expiresAt": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionToken":
        """Build a token from its wire form.

        Raises:
            ValueError: If a field is missing, contentBinding or poToken is not
                a non-empty string, or expiresAt is not ISO-8601.
        """
        try:
            content_binding = data["contentBinding"]
            token = data["poToken"]
            raw_expiry = data["expiresAt"]
        except KeyError as e:
            raise ValueError(f"Missing session field: {e.args[0]}") from e

        for name, value in (("contentBinding", content_binding), ("poToken", token)):
            if not isinstance(value, str) or not value:
                raise ValueError(f"Session field {name} must be a non-empty string")

        if isinstance(raw_expiry, datetime):
            expires_at = raw_expiry
        else:
            expires_at = datetime.fromisoformat(str(raw_expiry).replace("Z", "+00:00"))

        return cls(content_binding=content_binding, token=token, expires_at=expires_at)
