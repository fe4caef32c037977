"""
Pinboard Backend: Route Dependencies
=====================================

What:  The authorization gate for mutating endpoints.
How:   Reads `Authorization: Bearer <token>`, verifies it with AuthService
       and returns the Requester. Anything else raises AuthenticationError
       (401 "Authentication failed!").
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pinboard.exceptions import AuthenticationError
from pinboard.middleware.request_id import request_id_var
from pinboard.services.auth_service import AuthService, Requester, get_auth_service

# auto_error=False: a missing header reaches get_requester, which answers
# with the application's own 401 body instead of FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


async def get_requester(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Requester:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(
            context={"reason": "missing_token", "request_id": request_id_var.get("")}
        )
    return auth.verify_access_token(credentials.credentials)
