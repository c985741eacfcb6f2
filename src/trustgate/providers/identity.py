"""Identity provider interface.

Credential and MFA verification are delegated to an external identity
provider. TrustGate only asks whether the principal is known and verified.
"""

import threading
from abc import ABC, abstractmethod
from typing import Iterable


class IdentityProvider(ABC):
    """Answers whether a principal exists and passed upstream verification."""

    name = "identity"

    @abstractmethod
    def verify(self, principal: str) -> bool:
        """True if the principal is known.

        Raises:
            ProviderError: if the provider cannot be reached
        """


class InMemoryIdentityProvider(IdentityProvider):
    """Directory of known principals held in memory."""

    def __init__(self, principals: Iterable[str] = ()):
        self._principals = {p.strip().lower() for p in principals if p.strip()}
        self._lock = threading.Lock()

    def register(self, principal: str) -> None:
        with self._lock:
            self._principals.add(principal.strip().lower())

    def verify(self, principal: str) -> bool:
        with self._lock:
            return principal.strip().lower() in self._principals

    def __len__(self) -> int:
        with self._lock:
            return len(self._principals)
