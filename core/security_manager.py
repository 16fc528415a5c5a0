# core/security_manager.py
"""
Security Manager for the site platform
Implements:
- Admin password hashing and verification
- JWT issuance and verification for the admin dashboard
- Cleaning and validation of user-submitted input
- Security event logging
"""

import base64
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bleach
import jwt
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from email_validator import validate_email, EmailNotValidError
from flask import has_request_context, request

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Bearer token is malformed, expired, or issued for another site"""


@dataclass
class AdminClaims:
    """Verified contents of an admin token"""
    user_id: int
    username: str
    site_key: str
    expires_at: datetime


class SecurityManager:
    """
    Credentials, tokens and input hygiene for one site

    Args:
        secret: HMAC key for signing tokens
        site_key: Tenant the tokens are scoped to
        token_ttl: Token lifetime
        algorithm: JWT signing algorithm
    """

    PASSWORD_ITERATIONS = 200000

    def __init__(self, secret: str, site_key: str,
                 token_ttl: timedelta = timedelta(days=7), algorithm: str = 'HS256'):
        self.secret = secret
        self.site_key = site_key
        self.token_ttl = token_ttl
        self.algorithm = algorithm

    def hash_password(self, password: str, salt: Optional[str] = None) -> Tuple[str, str]:
        """
        Hash password with secure salt

        Args:
            password: Plain text password
            salt: Optional salt (generates new if not provided)

        Returns:
            Tuple of (hashed_password, salt)
        """
        if salt is None:
            salt = secrets.token_hex(16)

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode(),
            iterations=self.PASSWORD_ITERATIONS,
            backend=default_backend()
        )

        hashed = base64.b64encode(kdf.derive(password.encode())).decode()
        return hashed, salt

    def verify_password(self, password: str, hashed_password: str, salt: str) -> bool:
        computed_hash, _ = self.hash_password(password, salt)
        return hmac.compare_digest(hashed_password, computed_hash)

    def issue_token(self, user_id: int, username: str) -> str:
        """Sign an admin token for this site"""
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'username': username,
            'site_key': self.site_key,
            'iat': now,
            'exp': now + self.token_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> AdminClaims:
        """
        Decode and check an admin token

        Raises:
            InvalidTokenError: bad signature, expired, or wrong site
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError('Token expired') from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e

        if payload.get('site_key') != self.site_key:
            raise InvalidTokenError('Token issued for another site')

        try:
            return AdminClaims(
                user_id=int(payload['sub']),
                username=payload['username'],
                site_key=payload['site_key'],
                expires_at=datetime.fromtimestamp(payload['exp'], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError('Token is missing required claims') from e

    @staticmethod
    def clean_text(value: Any, max_length: Optional[int] = None) -> str:
        """Strip markup and surrounding whitespace from submitted text"""
        if value is None:
            return ''
        cleaned = bleach.clean(str(value), tags=[], attributes={}, strip=True).strip()
        if max_length is not None:
            cleaned = cleaned[:max_length]
        return cleaned

    @staticmethod
    def normalize_email(value: str) -> str:
        """
        Validate an e-mail address and return its normalized form

        Raises:
            ValueError: the address is not valid
        """
        try:
            return validate_email(value, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e

    def log_security_event(self, event_type: str, details: Dict[str, Any] = None):
        """Write a security event to the audit log"""
        source_ip = request.remote_addr if has_request_context() else 'system'
        endpoint = request.endpoint if has_request_context() else 'system'
        logger.info(
            f"Security event: {event_type} site={self.site_key} ip={source_ip} "
            f"endpoint={endpoint} details={details or {}}"
        )


def init_security_manager(app) -> SecurityManager:
    """Build the security manager from app config and attach it"""
    manager = SecurityManager(
        secret=app.config['JWT_SECRET'],
        site_key=app.config['SITE_KEY'],
        token_ttl=app.config['JWT_EXPIRES'],
        algorithm=app.config['JWT_ALGORITHM'],
    )
    app.security_manager = manager
    return manager
