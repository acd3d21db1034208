from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

# Token issuance lives elsewhere; this layer only checks the shared key
# and reads the caller's identity forwarded by the gateway.
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


async def verify_api_key(request: Request, api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != request.app.state.config.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key


async def get_current_user_id(user_id: str = Security(user_id_header)) -> str:
    """Identity of the calling user"""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return user_id
