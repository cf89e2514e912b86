from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from .settings import get_settings


# PUBLIC_INTERFACE
async def require_trigger_token(x_internal_token: Optional[str] = Header(default=None)) -> None:
    """
    FastAPI dependency guarding the run trigger with a shared secret.

    Behavior:
    - If INTERNAL_TRIGGER_TOKEN is unset (default): does nothing.
    - If set: the request must carry the same value in the X-Internal-Token header,
      otherwise 403 is raised.

    Settings are read per request so the secret can be rotated through the
    environment without rebuilding the app.

    Usage:
        router = APIRouter(dependencies=[Depends(require_trigger_token)])
    """
    expected: Optional[str] = get_settings().internal_trigger_token
    if expected is None:
        return None

    provided = (x_internal_token or "").strip()
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return None
