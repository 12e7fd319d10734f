# dalali/auth.py
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional

import firebase_admin
from fastapi import Header
from firebase_admin import auth, credentials, exceptions

from .errors import UnauthenticatedError
from .settings import settings

logger = logging.getLogger(__name__)


@lru_cache
def ensure_firebase_app() -> firebase_admin.App:
    """
    Initialize the Firebase app exactly once.

    Uses GOOGLE_APPLICATION_CREDENTIALS if it points at a file, ADC otherwise.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    sa_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    options = {"projectId": settings.firebase_project_id}
    try:
        if sa_path and os.path.isfile(sa_path):
            return firebase_admin.initialize_app(credentials.Certificate(sa_path), options)
        return firebase_admin.initialize_app(options=options)
    except ValueError:
        # another thread initialized it between our check and this call
        return firebase_admin.get_app()


def verify_token(id_token: str) -> str:
    """Return the uid for a Firebase ID token, or raise UnauthenticatedError."""
    app = ensure_firebase_app()
    try:
        claims = auth.verify_id_token(id_token, app=app)
    except (ValueError, exceptions.FirebaseError) as e:
        logger.info("rejected id token: %s", e)
        raise UnauthenticatedError("session is invalid or expired, please sign in again") from e
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise UnauthenticatedError("token has no user id")
    return uid


def current_user(authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency: the authenticated user id.

    Sync on purpose so FastAPI runs it in the threadpool; verification may
    fetch Google's public certs.
    """
    if not authorization:
        raise UnauthenticatedError("No user found, please sign in")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("expected a Bearer token")
    return verify_token(token.strip())
