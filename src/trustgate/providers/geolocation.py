"""IP geolocation providers."""

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from trustgate.common.constants import ProviderConstants
from trustgate.common.exceptions import ProviderError
from trustgate.data.schemas.location import GeoLocation

logger = logging.getLogger(__name__)


class GeolocationProvider(ABC):
    """Resolves a source IP to a location."""

    name = "geolocation"

    @abstractmethod
    def resolve(self, ip_address: str) -> Optional[GeoLocation]:
        """Location for an IP, or None when the IP cannot be located.

        Raises:
            ProviderError: if the provider cannot be reached
        """

    def close(self) -> None:
        """Release any held resources."""


class IpApiGeolocationProvider(GeolocationProvider):
    """ip-api.com JSON endpoint.

    A successful lookup looks like:
        {"status": "success", "city": "Lagos", "country": "Nigeria",
         "lat": 6.5244, "lon": 3.3792, ...}
    Private and reserved ranges come back with status "fail".
    """

    def __init__(
        self,
        url_template: str = ProviderConstants.IP_API_URL,
        timeout: float = ProviderConstants.DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def resolve(self, ip_address: str) -> Optional[GeoLocation]:
        url = self.url_template.format(ip=ip_address)
        try:
            r = self._client.get(url, params={"fields": "status,message,city,country,lat,lon"})
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(
                f"Geolocation lookup failed: {e}",
                provider=self.name,
                details={"ip": ip_address},
            ) from e

        if data.get("status") != "success":
            logger.info(f"IP {ip_address} could not be located: {data.get('message', 'unknown')}")
            return None

        try:
            return GeoLocation(
                city=data.get("city") or "",
                country=data["country"],
                latitude=data["lat"],
                longitude=data["lon"],
            )
        except (KeyError, PydanticValidationError) as e:
            raise ProviderError(
                "Malformed geolocation response",
                provider=self.name,
                details={"ip": ip_address},
            ) from e

    def close(self) -> None:
        self._client.close()


class StaticGeolocationProvider(GeolocationProvider):
    """Fixed IP -> location table, for development and tests."""

    def __init__(
        self,
        table: Optional[Mapping[str, GeoLocation]] = None,
        default: Optional[GeoLocation] = None,
    ):
        self.table = dict(table or {})
        self.default = default

    def resolve(self, ip_address: str) -> Optional[GeoLocation]:
        return self.table.get(ip_address, self.default)
