"""
Credential Stores
=================

Credential lookup for the generation client.

The pipeline reads exactly one named credential before each generation
call. Stores are safe for concurrent reads.

Implementations:
    - InMemorySecretStore: Process-local dictionary (tests, embedding apps)
    - EnvironmentSecretStore: Reads PRETTYNAILS_<KEY> environment variables
"""

import logging
import os
import threading
from typing import Dict, Optional, Protocol


logger = logging.getLogger(__name__)


class SecretStore(Protocol):
    """Key/value store for API credentials."""

    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, credential: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemorySecretStore:
    """Thread-safe dictionary-backed secret store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._secrets: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._secrets.get(key)

    def put(self, key: str, credential: str) -> None:
        with self._lock:
            self._secrets[key] = credential
        logger.info(f"Credential stored: {key}")

    def delete(self, key: str) -> None:
        with self._lock:
            self._secrets.pop(key, None)
        logger.info(f"Credential deleted: {key}")


class EnvironmentSecretStore:
    """
    Secret store over environment variables.

    Key "gemini_api_key" maps to PRETTYNAILS_GEMINI_API_KEY.
    """

    def __init__(self, prefix: str = "PRETTYNAILS_") -> None:
        self.prefix = prefix

    def _variable(self, key: str) -> str:
        return f"{self.prefix}{key.upper()}"

    def get(self, key: str) -> Optional[str]:
        value = os.environ.get(self._variable(key))
        return value or None

    def put(self, key: str, credential: str) -> None:
        os.environ[self._variable(key)] = credential

    def delete(self, key: str) -> None:
        os.environ.pop(self._variable(key), None)
