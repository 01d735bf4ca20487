from functools import lru_cache

from fastapi import Depends, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from blog_api.config import settings
from blog_api.errors import Unauthenticated
from blog_api.security import AuthContext, CredentialService
from blog_api.storage import AssetStore, IncomingFile

bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_credentials() -> CredentialService:
    """Process-wide credential service built from ``settings``."""
    return CredentialService(settings)


@lru_cache
def get_asset_store() -> AssetStore:
    """Process-wide asset store rooted at ``settings.UPLOAD_DIR``."""
    return AssetStore(settings)


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer),
    credentials: CredentialService = Depends(get_credentials),
) -> AuthContext:
    """
    Authorization gate for mutating routes.

    A request without a bearer token fails with ``Unauthenticated``; a
    token with a bad signature or past its expiry fails with ``Forbidden``
    (raised by ``validate_token``).  The user table is not consulted: the
    identity embedded in the token is trusted for its lifetime.
    """
    if cred is None:
        raise Unauthenticated()
    return credentials.validate_token(cred.credentials)


async def read_upload(upload: UploadFile | None) -> IncomingFile | None:
    """Read a multipart file field into memory; empty fields count as absent."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    await upload.close()
    return IncomingFile(filename=upload.filename, content=content)
