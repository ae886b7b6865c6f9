"""Firebase identity provider adapter"""
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials, exceptions

from polis.core.config import settings
from polis.modules.auth.schemas.auth import Identity

logger = logging.getLogger("polis")

_firebase_app = None


def initialize_firebase():
    """Initialize the Firebase Admin app once, on first use"""
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app
    except ValueError:
        pass

    service_account_path = settings.FIREBASE_SERVICE_ACCOUNT_PATH
    if os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        _firebase_app = firebase_admin.initialize_app(cred)
        logger.info(f"Firebase initialized with service account from {service_account_path}")
    else:
        # Falls back to application default credentials
        _firebase_app = firebase_admin.initialize_app()
        logger.warning("Firebase initialized without explicit credentials")
    return _firebase_app


def identity_from_claims(claims: dict) -> Identity:
    return Identity(
        uid=claims["uid"],
        email=claims.get("email"),
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
    )


def verify_firebase_token(token: str) -> Optional[Identity]:
    """Verify a Firebase ID token. Returns None when it is not valid."""
    if not token:
        return None

    try:
        app = initialize_firebase()
    except Exception as e:
        logger.error(f"Cannot verify token, Firebase failed to initialize: {e}")
        return None

    try:
        claims = auth.verify_id_token(token, app=app)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        logger.warning(f"Firebase token verification failed: {type(e).__name__}: {e}")
        return None
    except exceptions.FirebaseError as e:
        logger.error(f"Firebase error while verifying token: {e}")
        return None

    logger.info(f"Firebase token verified for user: {claims.get('uid')}")
    return identity_from_claims(claims)
