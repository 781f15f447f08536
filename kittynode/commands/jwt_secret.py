"""
JWT secret shared between the execution and consensus clients.
"""

import logging
import re
import secrets

from kittynode.commands.constants import JWT_SECRET_BYTES, JWT_SECRET_HEX_LENGTH
from kittynode.commands.file_utils import atomic_write
from kittynode.commands.home import Home

logger = logging.getLogger(__name__)

_JWT_PATTERN = re.compile(rf"^[0-9a-f]{{{JWT_SECRET_HEX_LENGTH}}}$")


def is_valid_jwt_secret(value: str) -> bool:
    return bool(_JWT_PATTERN.match(value))


def ensure_jwt_secret(home: Home) -> str:
    """Return the persisted JWT secret, generating it when absent or malformed."""
    home.base.mkdir(parents=True, exist_ok=True)
    path = home.jwt_path

    if path.exists():
        existing = path.read_text(encoding="utf-8").strip()
        if is_valid_jwt_secret(existing):
            return existing
        logger.warning("JWT secret at %s is malformed; regenerating", path)

    secret = secrets.token_hex(JWT_SECRET_BYTES)
    atomic_write(path, secret)
    logger.info("Generated JWT secret at %s", path)
    return secret
