from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.account_auth_service import AccountAuthService
from ...core.dependencies import get_account_auth_service

_bearer_scheme = HTTPBearer(auto_error=False)


def require_account_id(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    auth_service: AccountAuthService = Depends(get_account_auth_service),
) -> int:
    """Dependency resolving the authenticated account id."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    account_id = auth_service.verify_token(credentials.credentials)
    if account_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return account_id
