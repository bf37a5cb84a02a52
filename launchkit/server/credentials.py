"""
Credential minting for the integrated server.

The server writes raw secret-key bytes into its run directory on startup. The
launcher signs a root-user token with that key locally; no round-trip to the
server is needed.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

import jwt

from launchkit.core.exceptions import InvalidSecretKey

logger = logging.getLogger(__name__)

ROOT_USER_UUID = "00000000-0000-0000-0000-000000000000"
TOKEN_AUDIENCE = ["api"]
TOKEN_ALGORITHM = "HS256"


def read_secret_key(run_dir: Union[str, Path], filename: str) -> bytes:
    """
    Read the secret key the server wrote into its run directory.

    Raises:
        InvalidSecretKey: If the file is missing, unreadable or empty
    """
    key_path = Path(run_dir) / filename
    try:
        secret_key = key_path.read_bytes()
    except FileNotFoundError:
        raise InvalidSecretKey(f"Secret key file not found: {key_path}")
    except OSError as e:
        raise InvalidSecretKey(f"Failed to read secret key file {key_path}: {e}")

    if not secret_key:
        raise InvalidSecretKey(f"Secret key file is empty: {key_path}")

    logger.debug(f"Read {len(secret_key)} byte secret key from {key_path}")
    return secret_key


def mint_root_token(secret_key: bytes, now: Optional[int] = None) -> str:
    """
    Sign an HS256 token for the server's root user.

    Args:
        secret_key: Raw key bytes
        now: Issued-at time in unix seconds (default: current time)

    Example:
        >>> token = mint_root_token(b"k" * 32, now=0)
        >>> jwt.decode(token, b"k" * 32, algorithms=["HS256"], audience="api")
        {'sub': '00000000-0000-0000-0000-000000000000', 'iat': 0, 'aud': ['api']}
    """
    claims = {
        "sub": ROOT_USER_UUID,
        "iat": int(time.time()) if now is None else now,
        "aud": TOKEN_AUDIENCE,
    }
    return jwt.encode(claims, secret_key, algorithm=TOKEN_ALGORITHM)


def mint_credential(run_dir: Union[str, Path], filename: str) -> str:
    """Read the run directory's secret key and mint a root token with it."""
    return mint_root_token(read_secret_key(run_dir, filename))
