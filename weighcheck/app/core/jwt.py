"""
Worker bearer tokens.

Workers sign in with the identity service, which issues HS256 tokens
carrying the username (``sub``), ``worker_id`` and ``role``. This service
only verifies them; ``issue_worker_token`` exists for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from weighcheck.app.core.config import settings
from weighcheck.app.models.enums import WorkerRole


def issue_worker_token(
    worker_id: int,
    username: str,
    role: WorkerRole = WorkerRole.WORKER,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a token for one worker, valid for ``worker_token_ttl_minutes`` by default."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.worker_token_ttl_minutes))
    claims = {"sub": username, "worker_id": worker_id, "role": role.value, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_worker_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verified claims of a worker token.

    Returns None when the signature or the expiry check fails. Claim
    completeness is checked by the caller.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
