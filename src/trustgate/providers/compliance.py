"""Device compliance (MDM) providers."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from trustgate.data.schemas.login_attempt import DevicePosture


class ComplianceProvider(ABC):
    """Reports the security posture of a device."""

    name = "compliance"

    @abstractmethod
    def posture(self, principal: str, fingerprint: str) -> Optional[DevicePosture]:
        """Posture for a device, or None if the device is not managed.

        Raises:
            ProviderError: if the MDM agent cannot be reached
        """


class StaticComplianceProvider(ComplianceProvider):
    """Fixed fingerprint -> posture table."""

    def __init__(self, postures: Optional[Mapping[str, DevicePosture]] = None):
        self.postures = dict(postures or {})

    def set_posture(self, fingerprint: str, posture: DevicePosture) -> None:
        self.postures[fingerprint] = posture

    def posture(self, principal: str, fingerprint: str) -> Optional[DevicePosture]:
        return self.postures.get(fingerprint)
