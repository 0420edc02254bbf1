"""
Authentication routes for the Teams AI Agent API.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..middleware.auth import get_current_user

router = APIRouter(prefix="/auth")


@router.get("/user")
async def get_user(user: Dict[str, Any] = Depends(get_current_user)):
    """Return the caller's identity as carried by the Teams token."""
    return {
        "success": True,
        "user": {
            "id": user.get("oid") or user.get("sub"),
            "name": user.get("name") or user.get("preferred_username"),
            "email": user.get("email") or user.get("preferred_username"),
            "tenantId": user.get("tid"),
            "roles": user.get("roles") or [],
        },
    }
