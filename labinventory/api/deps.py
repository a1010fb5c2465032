from fastapi import Depends, Request
from labinventory.auth_local import Principal, decode_access_token
from labinventory.core.logging_config import set_request_context
from labinventory.domain.errors import PermissionDenied, Unauthorized

BEARER_PREFIX = "Bearer "

async def get_principal(request: Request) -> Principal:
    # async so the user id lands in the request's logging context
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing bearer token")
    principal = decode_access_token(auth_header[len(BEARER_PREFIX):])
    if principal is None:
        raise Unauthorized("Invalid or expired token")
    set_request_context(user_id=principal.user_id)
    return principal

async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise PermissionDenied("Admin privileges required")
    return principal
