from typing import List

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from .config import settings

# claim a token must carry to submit images for grading
GRADE_SCOPE = "maturity:grade"

bearer = HTTPBearer(auto_error=False)


def _scopes(payload: dict) -> List[str]:
    raw = payload.get("scope", payload.get("scopes", []))
    if isinstance(raw, str):
        return raw.split()
    return [str(s) for s in raw]


def require_grader(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    """Identity of the caller submitting images; any grader UI in demo mode."""
    if not settings.AUTH_ENABLED:
        return {
            "sub": "demo_grader",
            "role": "demo",
            "scope": [GRADE_SCOPE],
            "service": settings.PROJECT_NAME,
        }

    if creds is None or not creds.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token"
        )

    try:
        payload = jwt.decode(
            creds.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    scopes = _scopes(payload)
    if GRADE_SCOPE not in scopes:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Token lacks {GRADE_SCOPE} scope")

    return {
        "sub": payload["sub"],
        "role": payload.get("role", "grader"),
        "scope": scopes,
        "service": settings.PROJECT_NAME,
    }
