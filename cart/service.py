from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

import requests
import structlog
from requests.exceptions import ConnectionError, RequestException, Timeout
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from django.conf import settings

from .exceptions import ProductServiceUnavailable

logger = structlog.get_logger(__name__)


class TransientServiceError(Exception):
    """A failure worth retrying: timeouts, dropped connections, 5xx."""


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
    price: Decimal
    stock: int
    images: tuple = field(default_factory=tuple)

    @property
    def image(self):
        return self.images[0] if self.images else None

    @classmethod
    def from_payload(cls, payload):
        try:
            price = Decimal(str(payload['price'])).quantize(Decimal('0.01'))
            return cls(
                id=str(payload['id']),
                name=payload.get('name', ''),
                price=price,
                stock=int(payload.get('stock', 0)),
                images=tuple(payload.get('images') or ()),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise ProductServiceUnavailable(f"Malformed product payload: {exc}") from exc


def _log_retry(retry_state):
    logger.warning(
        "Retrying product service request",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


class BaseService:
    API_TIMEOUT = 3  # seconds
    MAX_RETRIES = 3
    RETRY_BACKOFF = 1

    @classmethod
    def _setting(cls, name, default):
        return getattr(settings, name, default)

    @classmethod
    def _retrying(cls):
        return Retrying(
            stop=stop_after_attempt(cls._setting('PRODUCT_SERVICE_MAX_RETRIES', cls.MAX_RETRIES)),
            wait=wait_exponential(
                multiplier=cls._setting('PRODUCT_SERVICE_RETRY_BACKOFF', cls.RETRY_BACKOFF),
                max=10,
            ),
            retry=retry_if_exception_type(TransientServiceError),
            before_sleep=_log_retry,
            reraise=True,
        )

    @classmethod
    def _make_request(cls, url):
        """GET ``url`` once. Returns None on 404."""
        try:
            response = requests.get(
                url,
                timeout=cls._setting('PRODUCT_SERVICE_TIMEOUT', cls.API_TIMEOUT)
            )
        except (Timeout, ConnectionError) as exc:
            raise TransientServiceError(f"Request to {url} failed: {exc}") from exc
        except RequestException as exc:
            raise ProductServiceUnavailable(f"Error making request to {url}: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise TransientServiceError(f"Request to {url} returned {response.status_code}")
        try:
            response.raise_for_status()
        except RequestException as exc:
            raise ProductServiceUnavailable(f"Error making request to {url}: {exc}") from exc
        return response

    @classmethod
    def _request_with_retry(cls, url):
        try:
            for attempt in cls._retrying():
                with attempt:
                    return cls._make_request(url)
        except TransientServiceError as exc:
            logger.error("Product service unreachable", url=url, error=str(exc))
            raise ProductServiceUnavailable() from exc


class ProductService(BaseService):
    """Client for the external product service.

    Prices and stock are read live on every call and never cached.
    """

    @classmethod
    def base_url(cls):
        return cls._setting('PRODUCT_SERVICE_URL', 'http://localhost:7000').rstrip('/')

    @classmethod
    def get_product(cls, product_id):
        url = f"{cls.base_url()}/products/{product_id}/"
        response = cls._request_with_retry(url)
        if response is None:
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProductServiceUnavailable(f"Invalid JSON from {url}") from exc
        return ProductSnapshot.from_payload(payload)
