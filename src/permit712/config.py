"""
Environment Configuration

Loads a ``.env`` file (if present) and exposes the handful of settings the
library reads from the environment.

Environment Variables:
    - PERMIT712_PRIVATE_KEY: Default signing key for the signing helpers
      (0x-prefixed hex).  Only consulted when no key is passed explicitly.
    - PERMIT712_DOMAIN_CACHE_SIZE: Maximum number of cached domain
      separators (default 128, ``0`` disables caching).
"""

import os
from typing import Optional

import dotenv

from .engine.exceptions import ConfigurationError

dotenv.load_dotenv()

DEFAULT_DOMAIN_CACHE_SIZE = 128


def get_private_key_from_env() -> Optional[str]:
    """
    Load the default signing private key from environment variables.

    Returns:
        str: Private key from environment, or None if not configured

    Note:
        The private key should be stored securely in environment variables
        and never committed to version control.

    Example:
        # In your .env file or environment setup:
        # export PERMIT712_PRIVATE_KEY="0x1234567890abcdef..."

        signature = sign_permit(...)  # falls back to PERMIT712_PRIVATE_KEY
    """
    return os.getenv("PERMIT712_PRIVATE_KEY") or None


def get_domain_cache_size() -> int:
    """
    Read the domain separator cache size from ``PERMIT712_DOMAIN_CACHE_SIZE``.

    Raises:
        ConfigurationError: If the value is not a non-negative integer.
    """
    raw = os.getenv("PERMIT712_DOMAIN_CACHE_SIZE")
    if raw is None or not raw.strip():
        return DEFAULT_DOMAIN_CACHE_SIZE
    try:
        size = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"PERMIT712_DOMAIN_CACHE_SIZE must be an integer, got {raw!r}"
        ) from exc
    if size < 0:
        raise ConfigurationError(f"PERMIT712_DOMAIN_CACHE_SIZE must be >= 0, got {size}")
    return size
