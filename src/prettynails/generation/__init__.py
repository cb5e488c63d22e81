"""
Generation Module
=================

Remote image generation and the collaborators around it.

Components:
    - GenerationClient: httpx client with typed error mapping
    - RetryPolicy: Caller-level exponential backoff for retryable kinds
    - SecretStore: Credential lookup protocol and implementations
"""

from prettynails.generation.client import GenerationClient
from prettynails.generation.credentials import (
    EnvironmentSecretStore,
    InMemorySecretStore,
    SecretStore,
)
from prettynails.generation.retry import RetryPolicy

__all__ = [
    "GenerationClient",
    "RetryPolicy",
    "SecretStore",
    "InMemorySecretStore",
    "EnvironmentSecretStore",
]
