"""
FastAPI dependencies.

Resolves the bearer token into the ``CurrentWorker`` auth context and
provides the external collaborators (storage, geocoder).
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from weighcheck.app.core.jwt import decode_worker_token
from weighcheck.app.core.redis_client import get_redis
from weighcheck.app.models.enums import WorkerRole
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.services.evidence_pipeline import EvidencePipeline
from weighcheck.app.services.geocoding import ReverseGeocoder
from weighcheck.app.services.storage import EvidenceUploader

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_worker(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentWorker:
    """
    FastAPI dependency for JWT authentication.

    Validates the token signature and expiry and maps the payload onto
    the auth context. No database lookup is made: the identity service
    that issued the token is trusted.

    Raises:
        HTTPException: 401 if the token is invalid or incomplete
    """
    payload = decode_worker_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    worker_id = payload.get("worker_id")
    username = payload.get("sub")
    if not worker_id or not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = WorkerRole(payload.get("role", WorkerRole.WORKER.value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid role in token"
        )

    return CurrentWorker(worker_id=worker_id, username=username, role=role)


# Collaborator providers, overridable in tests via app.dependency_overrides

def get_uploader() -> EvidenceUploader:
    return EvidenceUploader()


def get_evidence_pipeline(uploader: EvidenceUploader = Depends(get_uploader)) -> EvidencePipeline:
    return EvidencePipeline(uploader=uploader)


async def get_geocoder(redis=Depends(get_redis)) -> ReverseGeocoder:
    return ReverseGeocoder(redis)
