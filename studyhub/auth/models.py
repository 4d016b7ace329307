from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class IdentityClaims:
    """Signed-in user as reported by the identity provider.

    Only `sub` is a stable key; the rest is display data and may be missing.
    """

    sub: str
    name: Optional[str] = None
    email: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_id_token_payload(cls, payload: Dict[str, Any]) -> Optional["IdentityClaims"]:
        sub = str(payload.get("sub") or "").strip()
        if not sub:
            return None
        name = payload.get("name")
        email = payload.get("email")
        picture = payload.get("picture")
        return cls(
            sub=sub,
            name=str(name) if name else None,
            email=str(email) if email else None,
            picture=str(picture) if picture else None,
        )

    def to_claims(self) -> Dict[str, str]:
        out = {"sub": self.sub}
        for key in ("name", "email", "picture"):
            value = getattr(self, key)
            if value:
                out[key] = value
        return out
