from __future__ import annotations

import logging
import time
from typing import Callable

from .errors import InternalError
from .transport import HttpClient, HttpError, HttpResponse

logger = logging.getLogger(__name__)

FETCH_ERROR_PREFIX = "Error fetching public keys for Google certs: "


def parse_max_age(cache_control: str | None) -> int | None:
    """Returns the ``max-age`` directive of a Cache-Control header, if any."""
    if not cache_control:
        return None
    max_age: int | None = None
    for part in cache_control.split(","):
        name, _, value = part.strip().partition("=")
        if name.strip().lower() != "max-age":
            continue
        try:
            max_age = int(value.strip())
        except ValueError:
            continue
    return max_age


def _fetch_error_message(response: HttpResponse) -> str:
    message = FETCH_ERROR_PREFIX
    data = response.data
    if response.is_json() and isinstance(data, dict) and data.get("error"):
        message += str(data["error"])
        if data.get("error_description"):
            message += f" ({data['error_description']})"
    else:
        message += response.text
    return message


class PublicKeyCache:
    """Key id to PEM mapping fetched from a certificate URL.

    The cached mapping is served while ``now < expires_at``. ``keys`` and
    ``expires_at`` are only replaced together after a successful fetch, with
    no suspension point between the two assignments. There is no lock:
    concurrent misses may each fetch, and the last successful response wins.
    """

    def __init__(
        self,
        certificate_url: str,
        http_client: HttpClient | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.certificate_url = certificate_url
        self.http_client = http_client or HttpClient()
        self._clock = clock
        self.keys: dict[str, str] | None = None
        self.expires_at: float | None = None

    async def get_keys(self) -> dict[str, str]:
        cached = self.keys
        if cached is not None and self.expires_at is not None and self._clock() < self.expires_at:
            logger.debug("using cached public keys until %s", self.expires_at)
            return cached

        logger.debug("fetching public keys from %s", self.certificate_url)
        try:
            response = await self.http_client.send("GET", self.certificate_url)
            data = response.data
            if not response.is_json() or not isinstance(data, dict) or "error" in data:
                raise HttpError(response)
        except HttpError as exc:
            message = _fetch_error_message(exc.response)
            logger.debug("public key fetch failed with status %s", exc.response.status)
            raise InternalError(message) from exc

        max_age = parse_max_age(response.headers.get("cache-control"))
        keys = {str(kid): value for kid, value in data.items()}
        expires_at = self._clock() + max_age if max_age is not None else None
        self.keys, self.expires_at = keys, expires_at
        if max_age is None:
            logger.debug("no max-age on %s; keys will be refetched", self.certificate_url)
        else:
            logger.debug("cached %d public keys for %d seconds", len(keys), max_age)
        return keys
