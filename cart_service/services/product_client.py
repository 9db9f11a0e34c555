# cart_service/services/product_client.py
from dataclasses import dataclass
from decimal import Decimal

import requests
from requests import RequestException

from cart_service.domain.errors import ExternalServiceError
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import http_retry
from cart_service.utils.settings import PRODUCT_SERVICE_URL, PRODUCT_TIMEOUT_SECONDS

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductInfo:
    id: str
    name: str
    price: Decimal
    stock: int
    active: bool


@dataclass(frozen=True)
class InventoryCheck:
    product_id: str
    requested_quantity: int
    available_quantity: int
    available: bool


class ProductClient:
    """
    Klient product-service, tylko odczyt.
    Koszyk nie rezerwuje stanow magazynowych, tylko sprawdza dostepnosc.
    """

    def __init__(self, base_url: str | None = None, timeout: float = PRODUCT_TIMEOUT_SECONDS):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        self.http = requests.Session()

    @http_retry()
    def fetch_product(self, product_id: str) -> dict | None:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = self.http.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def get_product(self, product_id: str) -> ProductInfo | None:
        try:
            data = self.fetch_product(product_id)
        except RequestException as e:
            logger.error(f"Product service unavailable for product {product_id}: {e}")
            raise ExternalServiceError("product-service", str(e))

        if data is None:
            return None

        return ProductInfo(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=Decimal(str(data["price"])),
            stock=int(data.get("stock", 0)),
            active=bool(data.get("active", True)),
        )

    def check_inventory(self, product_id: str, quantity: int) -> InventoryCheck:
        product = self.get_product(product_id)
        available_quantity = product.stock if product and product.active else 0

        return InventoryCheck(
            product_id=product_id,
            requested_quantity=quantity,
            available_quantity=available_quantity,
            available=available_quantity >= quantity,
        )

    def close(self) -> None:
        self.http.close()
