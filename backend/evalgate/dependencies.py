"""Request-scoped dependencies shared by the routers."""
from fastapi import Depends, Header, HTTPException, status

from evalgate.config import settings
from evalgate.errors import AdminAccessRequired


def get_current_user_id(x_user_id: str = Header(default="")) -> str:
    """Caller identity, resolved upstream by the auth gateway into ``X-User-Id``."""
    if not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id.strip()


def require_admin(caller_id: str = Depends(get_current_user_id)) -> str:
    """Caller must be one of the configured ``ADMIN_USER_IDS``."""
    if caller_id not in settings.admin_user_ids:
        raise AdminAccessRequired()
    return caller_id
