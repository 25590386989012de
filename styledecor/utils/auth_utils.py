# styledecor/utils/auth_utils.py
import base64
import json
import logging
from datetime import datetime, timedelta, timezone

import firebase_admin
import jwt
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions
from starlette.concurrency import run_in_threadpool

from styledecor.core.config import Settings
from styledecor.core.error_messages import Unauthenticated, UpstreamFailure

logger = logging.getLogger(__name__)


def create_access_token(data: dict, settings: Settings, expires_delta: timedelta = timedelta(minutes=30)):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, settings: Settings):
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])


class JWTIdentityVerifier:
    """Verifies locally signed HS256 tokens. Used in development and tests."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def verify(self, token: str) -> str:
        try:
            payload = decode_token(token, self.settings)
        except jwt.PyJWTError as e:
            logger.warning("Token rejected: %s", e)
            raise Unauthenticated() from e
        email = payload.get("email")
        if not email:
            raise Unauthenticated()
        return email


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens issued to the web client."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.app = None

    def _get_app(self):
        # Initialize Firebase Admin SDK (only once)
        if self.app is not None:
            return self.app
        try:
            self.app = firebase_admin.get_app()
        except ValueError:
            if self.settings.FIREBASE_SERVICE_KEY:
                try:
                    decoded = base64.b64decode(self.settings.FIREBASE_SERVICE_KEY).decode("utf-8")
                    cred = credentials.Certificate(json.loads(decoded))
                except ValueError as e:
                    logger.exception("FIREBASE_SERVICE_KEY is not a valid base64 service account")
                    raise UpstreamFailure() from e
                self.app = firebase_admin.initialize_app(cred)
                logger.info("Firebase Admin initialized with service account")
            else:
                self.app = firebase_admin.initialize_app()
                logger.info("Firebase Admin initialized with default credentials")
        return self.app

    async def verify(self, token: str) -> str:
        app = self._get_app()
        # verify_id_token may fetch Google certificates, keep it off the event loop
        try:
            decoded = await run_in_threadpool(firebase_auth.verify_id_token, token, app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.warning("Firebase token rejected: %s", e)
            raise Unauthenticated() from e
        email = decoded.get("email")
        if not email:
            raise Unauthenticated()
        return email


def build_identity_verifier(settings: Settings):
    if settings.AUTH_PROVIDER == "jwt":
        return JWTIdentityVerifier(settings)
    return FirebaseIdentityVerifier(settings)
