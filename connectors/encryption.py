"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The key comes from ``config.token_encryption_key`` (env var:
``TOKEN_ENCRYPTION_KEY``).  Without a key tokens are stored as plaintext
and a warning is logged once.  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)


class TokenCipher:
    def __init__(self, key: str = "") -> None:
        self._fernet: Optional[Fernet] = None
        if not key:
            logger.warning(
                "TOKEN_ENCRYPTION_KEY not set — OAuth tokens will be stored as plaintext."
            )
            return
        # A malformed key is a deployment error; let it surface at startup.
        self._fernet = Fernet(key.encode())
        logger.info("Token encryption enabled (Fernet)")

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        if plaintext is None or self._fernet is None:
            return plaintext
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """
        Decrypt a stored token.

        Values written before encryption was enabled are not valid Fernet
        tokens and are returned unchanged.
        """
        if ciphertext is None or self._fernet is None:
            return ciphertext
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.warning("Stored token is not Fernet-encrypted; using it as plaintext")
            return ciphertext


@lru_cache(maxsize=1)
def get_cipher() -> TokenCipher:
    return TokenCipher(config.token_encryption_key)


def encrypt_token(plaintext: Optional[str]) -> Optional[str]:
    return get_cipher().encrypt(plaintext)


def decrypt_token(ciphertext: Optional[str]) -> Optional[str]:
    return get_cipher().decrypt(ciphertext)
