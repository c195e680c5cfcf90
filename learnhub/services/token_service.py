"""JWT access token creation and validation (ES256).

The identity service's contract with the lifecycle core is a bearer
token carrying ``sub`` (the user id) and ``role``.  Login, refresh and
password handling live in the identity service, not here; this module
only mints tokens for dev/test and validates them on every request.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from learnhub.models.principal import Role

# Dev/test: generate an ephemeral EC key pair on import.
# Production: load the identity service's public key instead.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "learnhub-identity"
AUDIENCE = "learnhub-service"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(*, sub: str, role: Role = Role.STUDENT) -> str:
    """Build and sign a JWT access token with sub, role, iss, aud, exp, iat, jti."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "role": str(role),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti", "role"]},
    )
