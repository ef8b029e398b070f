"""Remote data gateway: a thin, fail-fast client for the site-data REST API.

Every method issues exactly one HTTP call. There are no retries and no
caching; deciding what to do on failure is the provider's job.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import TypeAdapter

from tradesite.core.errors import (
    ConfigurationError,
    NotFoundError,
    PayloadTooLarge,
    TransientNetworkError,
)
from tradesite.models.inquiry import Inquiry, InquiryCreate, InquiryStatus
from tradesite.models.product import Product
from tradesite.models.site import SiteData

logger = logging.getLogger(__name__)

_product_list = TypeAdapter(List[Product])
_inquiry_list = TypeAdapter(List[Inquiry])

# Ask intermediaries for fresh data on every document fetch
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def normalize_base_url(base_url: Optional[str]) -> Optional[str]:
    if base_url is None or not base_url.strip():
        return None
    return base_url.strip().rstrip("/")


class RemoteGateway:
    def __init__(self, base_url: Optional[str], session: Optional[requests.Session] = None):
        self.base_url = normalize_base_url(base_url)
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return self.base_url is not None

    def _url(self, endpoint: str) -> str:
        if not self.base_url:
            raise ConfigurationError("API base URL not configured")
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url}{endpoint}"

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = self._url(endpoint)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise TransientNetworkError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 413:
            raise PayloadTooLarge(f"{method} {endpoint}: 413 Content Too Large")
        if response.status_code == 404:
            raise NotFoundError(f"{method} {endpoint}: not found")
        if not 200 <= response.status_code < 300:
            raise TransientNetworkError(
                f"{method} {endpoint} failed: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not (response.text or "").strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            # A static host answering with its HTML fallback page, for example
            raise TransientNetworkError(
                f"{method} {endpoint}: response is not JSON", status_code=response.status_code
            ) from e

    # ---------- site document ----------

    def get_site_data(self) -> SiteData:
        data = self._request("GET", "/site-data", headers=NO_CACHE_HEADERS)
        return SiteData.model_validate(data)

    def replace_site_data(self, doc: SiteData) -> Any:
        return self._request("PUT", "/site-data", json=doc.model_dump(mode="json"))

    def update_section(self, section: str, value: Any) -> Any:
        return self._request("PATCH", f"/site-data/{section}", json=value)

    def upload_site_data(self, content: bytes, filename: str = "site-data.json") -> Any:
        files = {"file": (filename, content, "application/json")}
        return self._request("POST", "/site-data/upload", files=files)

    # ---------- products ----------

    def list_products(self) -> List[Product]:
        return _product_list.validate_python(self._request("GET", "/site-data/products"))

    def get_product(self, product_id: str) -> Product:
        return Product.model_validate(self._request("GET", f"/site-data/products/{product_id}"))

    def upsert_product(self, product: Product) -> Product:
        data = self._request("POST", "/site-data/products", json=product.model_dump(mode="json"))
        return Product.model_validate(data)

    def upsert_products_batch(self, products: List[Product]) -> Any:
        payload = [p.model_dump(mode="json") for p in products]
        return self._request("POST", "/site-data/products/batch", json=payload)

    def update_product(self, product_id: str, updates: Dict[str, Any]) -> Product:
        data = self._request("PATCH", f"/site-data/products/{product_id}", json=updates)
        return Product.model_validate(data)

    def delete_product(self, product_id: str) -> Any:
        return self._request("DELETE", f"/site-data/products/{product_id}")

    # ---------- inquiries ----------

    def get_inquiries(self) -> List[Inquiry]:
        return _inquiry_list.validate_python(self._request("GET", "/inquiries"))

    def create_inquiry(self, inquiry: InquiryCreate) -> Inquiry:
        data = self._request("POST", "/inquiries", json=inquiry.model_dump(mode="json"))
        return Inquiry.model_validate(data)

    def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> Inquiry:
        data = self._request("PATCH", f"/inquiries/{inquiry_id}", json={"status": status})
        return Inquiry.model_validate(data)

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")


def encode_document(doc: SiteData) -> bytes:
    """Serialize a document the way uploads and exports expect it."""
    return json.dumps(doc.model_dump(mode="json"), ensure_ascii=False, indent=2).encode("utf-8")
