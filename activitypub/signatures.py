"""
HTTP signature authentication for the federation api.

Requests without an Authorization header are anonymous. Requests carrying
one must be signed with the key of a local account, identified by a key id
of the form ``<api>/accounts/<key hash>#main-key``, and must cover the
``(request-target)``, ``host`` and ``date`` headers.
"""

import base64
import binascii
import logging
from typing import Annotated, Optional, Sequence
from urllib.parse import urlparse

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import Depends, Request
from httpsig import HeaderVerifier
from httpsig.utils import parse_authorization_header
from sqlalchemy.ext.asyncio import AsyncSession

from activitypub.ids import KEY_FRAGMENT, last_segment
from config import settings
from database import get_db_session
from domain.account import Account, anonymous_account
from errors import (
    AccountResolutionError,
    KeyIdError,
    KeyParseError,
    NotFoundError,
    SignatureVerificationError,
)
from services import accounts

logger = logging.getLogger('uvicorn.error')

REQUIRED_HEADERS = ("(request-target)", "host", "date")
SIGNATURE_SCHEME = "signature"


def decode_public_key(encoded: Optional[str]) -> bytes:
    """Decode the base64 PKIX DER blob stored in the account metadata."""
    if not encoded:
        raise KeyParseError("missing public key")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyParseError(f"unable to decode public key: {e}") from e


def parse_public_key(encoded: Optional[str]) -> rsa.RSAPublicKey:
    """Parse a base64 encoded PKIX (SubjectPublicKeyInfo) DER public key."""
    der = decode_public_key(encoded)
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyParseError(f"unable to parse public key: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyParseError("unsupported public key type")
    return key


def public_key_pem(encoded: Optional[str]) -> str:
    key = parse_public_key(encoded)
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


class KeyLoader:
    """Resolves signature key ids to local accounts and their public keys."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.account: Optional[Account] = None

    async def get_key(self, key_id: Optional[str]) -> str:
        if not key_id:
            raise KeyIdError("missing key id")
        url = urlparse(key_id)
        if url.fragment != KEY_FRAGMENT:
            raise KeyIdError(f"invalid key id {key_id!r}")

        key_hash = last_segment(url.path)
        try:
            account = await accounts.load_account_by_key(self.db, key_hash)
        except NotFoundError as e:
            raise AccountResolutionError(f"unable to resolve account for key {key_id!r}") from e

        pem = public_key_pem(account.public_key)
        self.account = account
        return pem


def build_challenge(realm: str, headers: Sequence[str] = REQUIRED_HEADERS) -> str:
    params = []
    if realm:
        params.append(f'realm="{realm}"')
    if headers:
        params.append(f'headers="{" ".join(headers)}"')
    challenge = "Signature"
    if params:
        challenge += " " + ", ".join(params)
    return challenge


def auth_param(params, name: str) -> Optional[str]:
    """
    Look up an Authorization header parameter.

    httpsig lowercases the parameter names it parses and its dict only
    folds case on item access, so `.get` would miss camel cased names.
    """
    return params[name] if name in params else None


def request_target_path(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    if request.url.query:
        path += "?" + request.url.query
    return path


class SignatureVerifier:
    def __init__(self, realm: str, required_headers: Sequence[str] = REQUIRED_HEADERS):
        self.realm = realm
        self.required_headers = list(required_headers)
        self.challenge = build_challenge(realm, self.required_headers)

    async def verify(self, request: Request, loader: KeyLoader) -> Account:
        header = request.headers.get("authorization", "")
        try:
            scheme, params = parse_authorization_header(header)
        except ValueError as e:
            raise SignatureVerificationError(f"invalid authorization header: {e}") from e
        if scheme.lower() != SIGNATURE_SCHEME:
            raise SignatureVerificationError(f"unsupported authorization scheme {scheme!r}")
        # only asymmetric signatures, a hmac would be keyed with our public key
        algorithm = auth_param(params, "algorithm") or ""
        if not algorithm.lower().startswith("rsa-"):
            raise SignatureVerificationError(f"unsupported signature algorithm {algorithm!r}")

        pem = await loader.get_key(auth_param(params, "keyId"))
        try:
            verified = HeaderVerifier(
                dict(request.headers),
                pem,
                required_headers=self.required_headers,
                method=request.method,
                path=request_target_path(request),
                sign_header="authorization",
            ).verify()
        except Exception as e:
            raise SignatureVerificationError(f"signature verification failed: {e}") from e
        if not verified:
            raise SignatureVerificationError("invalid signature")
        return loader.account


verifier = SignatureVerifier(realm=settings.HOSTNAME)


async def verify_http_signature(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Account:
    """Attach the signing account, or the anonymous one, to the request."""
    account = anonymous_account()
    if "authorization" in request.headers:
        try:
            account = await verifier.verify(request, KeyLoader(db))
        except SignatureVerificationError as e:
            e.headers["WWW-Authenticate"] = verifier.challenge
            raise
        logger.debug(f"loaded account from http signature header handle={account.handle} hash={account.hash}")
    request.state.account = account
    return account
