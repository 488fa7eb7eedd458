from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException

from daylog.settings import get_settings


@dataclass(frozen=True)
class Identity:
    """Current-owner signal consumed by the sync layer.

    ``owner_id`` is ``None`` while signed out; ``loading`` is true while the
    provider has not resolved the session yet.
    """

    owner_id: str | None = None
    loading: bool = False

    @property
    def signed_in(self) -> bool:
        return bool(self.owner_id) and not self.loading


def check_owner(owner_id: str | None, token: str | None) -> str:
    settings = get_settings()
    if not token or token != settings.backend_session_secret:
        raise HTTPException(status_code=401, detail="Invalid backend token")
    if not owner_id or not owner_id.strip():
        raise HTTPException(status_code=401, detail="Missing owner id")
    owner = owner_id.strip()
    if "/" in owner:
        raise HTTPException(status_code=400, detail="Invalid owner id")
    if settings.allowed_owners and owner not in settings.allowed_owners:
        raise HTTPException(status_code=403, detail="Owner not allowed")
    return owner


async def require_owner_id(
    x_owner_id: str | None = Header(default=None, alias="X-Owner-Id"),
    x_backend_token: str | None = Header(default=None, alias="X-Backend-Token"),
) -> str:
    return check_owner(x_owner_id, x_backend_token)
