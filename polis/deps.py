from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from polis.core.storage import BlobStore
from polis.db.session import Database
from polis.modules.auth.schemas.auth import Identity
from polis.modules.auth.services.firebase_auth import verify_firebase_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator:
    """
    Dependency for getting a DB session, closed after the request
    """
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_token_verifier():
    return verify_firebase_token


def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    verify=Depends(get_token_verifier),
) -> Identity:
    """
    Dependency for the identity behind the Firebase ID token in the Authorization header
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    identity = verify(credentials.credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
