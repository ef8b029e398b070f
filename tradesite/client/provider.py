"""Reconciling data provider.

The single source of truth for UI code. It owns the in-memory site document
and inquiry list and reconciles three sources:

    remote API  ->  local cache  ->  bundled default dataset

Loading walks that chain until it finds real data. Writes are optimistic:
the in-memory state and the local cache are updated first, then the remote
API is tried. A failed remote call never rolls the local state back; the
returned ``WriteResult.sync`` says whether the server has the change.
"""

import asyncio
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from tradesite.client.cache import SITE_DATA_KEY, LocalCache
from tradesite.client.gateway import RemoteGateway, encode_document
from tradesite.core.config import Settings, settings as default_settings
from tradesite.core.errors import (
    ConfigurationError,
    InvalidSectionError,
    NotFoundError,
    PayloadTooLarge,
    StorageQuotaError,
    TradesiteError,
    TransientNetworkError,
    ValidationError,
)
from tradesite.core.timeutils import utc_now_iso
from tradesite.data.defaults import load_default_site_data
from tradesite.models.inquiry import Inquiry, InquiryCreate, InquiryStatus, InquiryStatusUpdate
from tradesite.models.legacy import upgrade_legacy_document
from tradesite.models.product import Product
from tradesite.models.site import SECTIONS, SiteData, is_empty_document, validate_section

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED_REMOTE = "loaded_remote"
    LOADED_CACHE = "loaded_cache"
    LOADED_DEFAULT = "loaded_default"


class SyncStatus(str, Enum):
    SYNCED = "synced"
    # Remote not configured or unreachable; the next load() reconciles
    LOCAL_ONLY = "local_only"
    # Remote refused the write (4xx); retrying the same request will not help
    FAILED_PERMANENTLY = "failed_permanently"


@dataclass
class WriteResult(Generic[T]):
    value: T
    sync: SyncStatus
    error: Optional[str] = None


@dataclass
class DocumentSnapshot:
    document: SiteData
    is_loading: bool
    error: Optional[str]
    state: LoadState


def _validation_errors(e: PydanticValidationError) -> List[Dict[str, Any]]:
    return e.errors(include_url=False, include_context=False)


class SiteDataProvider:
    def __init__(
        self,
        gateway: RemoteGateway,
        cache: LocalCache,
        default_loader: Callable[[], SiteData] = load_default_site_data,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.cache = cache
        self.default_loader = default_loader
        self.settings = settings or default_settings

        self._document = SiteData()
        self._inquiries: List[Inquiry] = []
        self.state = LoadState.UNLOADED
        self.error: Optional[str] = None

    # ---------- snapshots ----------

    @property
    def is_loading(self) -> bool:
        return self.state == LoadState.LOADING

    def get_document(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            document=self._document.model_copy(deep=True),
            is_loading=self.is_loading,
            error=self.error,
            state=self.state,
        )

    def get_inquiries(self) -> List[Inquiry]:
        return [i.model_copy() for i in self._inquiries]

    # ---------- remote helpers ----------

    async def _call_remote(self, func: Callable[..., Any], *args: Any) -> Any:
        # Gateway is blocking (requests); keep the event loop free
        return await asyncio.to_thread(func, *args)

    def _classify(self, action: str, exc: Exception) -> Tuple[SyncStatus, str]:
        message = str(exc)
        if isinstance(exc, ConfigurationError):
            logger.debug("%s kept local only: %s", action, message)
            return SyncStatus.LOCAL_ONLY, message
        if isinstance(exc, NotFoundError):
            logger.warning("Remote sync failed for %s (not found); keeping local state", action)
            return SyncStatus.FAILED_PERMANENTLY, message
        if isinstance(exc, TransientNetworkError) and exc.is_rejection:
            logger.warning("Remote rejected %s; keeping local state: %s", action, message)
            return SyncStatus.FAILED_PERMANENTLY, message
        logger.warning("Remote sync failed for %s; keeping local state: %s", action, message)
        return SyncStatus.LOCAL_ONLY, message

    async def _push(self, action: str, func: Callable[..., Any], *args: Any) -> Tuple[SyncStatus, Optional[str], Any]:
        try:
            result = await self._call_remote(func, *args)
        except (TradesiteError, PydanticValidationError) as e:
            status, message = self._classify(action, e)
            return status, message, None
        return SyncStatus.SYNCED, None, result

    # ---------- local commits ----------

    def _commit_document(self, doc: SiteData) -> None:
        self._document = doc
        self.cache.save_document(doc)

    def _commit_inquiries(self, inquiries: List[Inquiry]) -> None:
        self._inquiries = inquiries
        self.cache.save_inquiries(inquiries)

    def _mirror(self, doc: SiteData, inquiries: List[Inquiry]) -> None:
        # Mirroring on load is best effort; a full cache must not break reads
        try:
            self.cache.save_document(doc)
            self.cache.save_inquiries(inquiries)
        except TradesiteError as e:
            logger.warning("Could not mirror site data into local cache: %s", e)

    # ---------- load ----------

    async def load(self) -> DocumentSnapshot:
        """Populate state from remote, then cache, then the default dataset.

        Never raises; ``error`` on the snapshot says which tier was used and why.
        """
        self.state = LoadState.LOADING
        doc_result, inquiries_result = await asyncio.gather(
            self._call_remote(self.gateway.get_site_data),
            self._call_remote(self.gateway.get_inquiries),
            return_exceptions=True,
        )

        remote_inquiries: Optional[List[Inquiry]] = None
        if not isinstance(inquiries_result, BaseException):
            remote_inquiries = inquiries_result

        failure = next(
            (r for r in (doc_result, inquiries_result) if isinstance(r, BaseException)), None
        )
        if failure is None and not is_empty_document(doc_result):
            self._document = doc_result
            self._inquiries = remote_inquiries
            self._mirror(doc_result, remote_inquiries)
            self.state = LoadState.LOADED_REMOTE
            self.error = None
            logger.info("Loaded site data from remote API (%d products)", len(doc_result.products))
            return self.get_document()

        if failure is None:
            reason = "remote API returned empty site data"
            logger.warning("Remote site data looks empty, falling back")
        elif isinstance(failure, ConfigurationError):
            reason = str(failure)
            logger.info("Remote API not configured, using local data")
        elif isinstance(failure, (TradesiteError, PydanticValidationError)):
            reason = str(failure)
            logger.warning("Failed to load site data from remote API: %s", reason)
        elif isinstance(failure, Exception):
            reason = f"unexpected remote response ({failure!r})"
            logger.warning("Failed to load site data from remote API", exc_info=failure)
        else:
            raise failure

        inquiries = remote_inquiries
        if inquiries is None:
            inquiries = self.cache.load_inquiries() or []

        cached = self.cache.load_document()
        if cached is not None and not is_empty_document(cached):
            self._document = cached
            self._inquiries = inquiries
            self.state = LoadState.LOADED_CACHE
            self.error = f"Using cached site data ({reason})"
            return self.get_document()

        try:
            default = self.default_loader()
        except (OSError, ValueError) as e:
            logger.error("Default dataset could not be loaded: %s", e)
            default = SiteData()
            reason = f"{reason}; default dataset unavailable: {e}"
        self._document = default
        self._inquiries = inquiries
        self._mirror(default, inquiries)
        self.state = LoadState.LOADED_DEFAULT
        self.error = f"Using default site data ({reason})"
        return self.get_document()

    async def reload(self) -> DocumentSnapshot:
        return await self.load()

    # ---------- document writes ----------

    async def replace_document(self, doc: SiteData) -> WriteResult[SiteData]:
        doc = doc.model_copy(deep=True)
        self._commit_document(doc)
        sync, error, _ = await self._push("replace site data", self.gateway.replace_site_data, doc)
        return WriteResult(doc, sync, error)

    async def update_section(self, name: str, value: Any) -> WriteResult[Any]:
        if name not in SECTIONS:
            raise InvalidSectionError(name)
        try:
            clean = validate_section(name, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid value for section {name}", _validation_errors(e)) from e

        data = self._document.model_dump(mode="json")
        data[name] = clean
        self._commit_document(SiteData.model_validate(data))
        sync, error, _ = await self._push(f"section {name}", self.gateway.update_section, name, clean)
        return WriteResult(clean, sync, error)

    async def upsert_product(self, product: Union[Product, Dict[str, Any]]) -> WriteResult[Product]:
        try:
            product = Product.model_validate(product)
        except PydanticValidationError as e:
            raise ValidationError("Invalid product", _validation_errors(e)) from e
        product = product.model_copy(deep=True)

        products = list(self._document.products)
        index = next((i for i, p in enumerate(products) if p.id == product.id), None)
        if index is None:
            # Newest first for the admin list
            products.insert(0, product)
        else:
            products[index] = product
        self._commit_document(self._document.model_copy(update={"products": products}))

        sync, error, _ = await self._push(
            f"product {product.id}", self.gateway.upsert_product, product
        )
        return WriteResult(product, sync, error)

    async def delete_product(self, product_id: str) -> WriteResult[str]:
        if not any(p.id == product_id for p in self._document.products):
            raise NotFoundError(f"Product {product_id} not found")

        products = [p for p in self._document.products if p.id != product_id]
        featured = [i for i in self._document.featuredProductIds if i != product_id]
        self._commit_document(
            self._document.model_copy(update={"products": products, "featuredProductIds": featured})
        )

        try:
            await self._call_remote(self.gateway.delete_product, product_id)
        except NotFoundError:
            # Already gone on the server
            logger.info("Product %s was not on the server", product_id)
        except (TradesiteError, PydanticValidationError) as e:
            sync, error = self._classify(f"delete product {product_id}", e)
            return WriteResult(product_id, sync, error)
        return WriteResult(product_id, SyncStatus.SYNCED, None)

    # ---------- inquiries ----------

    async def create_inquiry(self, data: Union[InquiryCreate, Dict[str, Any]]) -> WriteResult[Inquiry]:
        try:
            inquiry_in = InquiryCreate.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("Invalid inquiry", _validation_errors(e)) from e

        placeholder = Inquiry(
            **inquiry_in.model_dump(mode="json"),
            id=f"inq-local-{uuid.uuid4().hex[:12]}",
            createdAt=utc_now_iso(),
            status="new",
        )
        self._commit_inquiries([placeholder] + self._inquiries)

        sync, error, created = await self._push("create inquiry", self.gateway.create_inquiry, inquiry_in)
        if sync != SyncStatus.SYNCED or created is None:
            return WriteResult(placeholder, sync, error)

        # Server id and timestamp are authoritative
        self._commit_inquiries(
            [created if i.id == placeholder.id else i for i in self._inquiries]
        )
        return WriteResult(created, sync, error)

    async def set_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> WriteResult[Inquiry]:
        try:
            status = InquiryStatusUpdate(status=status).status
        except PydanticValidationError as e:
            raise ValidationError("Invalid inquiry status", _validation_errors(e)) from e

        current = next((i for i in self._inquiries if i.id == inquiry_id), None)
        if current is None:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")

        updated = current.model_copy(update={"status": status})
        self._commit_inquiries([updated if i.id == inquiry_id else i for i in self._inquiries])
        sync, error, _ = await self._push(
            f"inquiry {inquiry_id} status", self.gateway.update_inquiry_status, inquiry_id, status
        )
        return WriteResult(updated, sync, error)

    # ---------- export / import ----------

    def export_document_as_text(self) -> str:
        return json.dumps(self._document.model_dump(mode="json"), ensure_ascii=False, indent=2)

    def _parse_import(self, doc: Union[SiteData, Dict[str, Any], str, bytes]) -> SiteData:
        if isinstance(doc, SiteData):
            return doc.model_copy(deep=True)
        if isinstance(doc, (str, bytes)):
            try:
                doc = json.loads(doc)
            except ValueError as e:
                raise ValidationError(f"Import is not valid JSON: {e}") from e
        if not isinstance(doc, dict):
            raise ValidationError("Import must be a JSON object")
        try:
            return SiteData.model_validate(upgrade_legacy_document(doc))
        except PydanticValidationError as e:
            raise ValidationError("Imported site data failed validation", _validation_errors(e)) from e

    async def import_document(
        self,
        doc: Union[SiteData, Dict[str, Any], str, bytes],
        raw_file: Optional[bytes] = None,
    ) -> WriteResult[SiteData]:
        """Replace the whole document with a validated import.

        Large documents (or any import that came from a file) are sent as a
        file upload. If the server answers 413 the document is pushed in
        pieces: every section on its own, then products in small batches.
        """
        parsed = self._parse_import(doc)
        self._document = parsed
        cache_error = self._cache_import(parsed)

        # The uploaded bytes are the normalized document, so the server
        # receives exactly what was committed locally
        content = encode_document(parsed)
        use_upload = raw_file is not None or len(content) > self.settings.upload_threshold_bytes
        try:
            if use_upload:
                await self._call_remote(self.gateway.upload_site_data, content)
            else:
                await self._call_remote(self.gateway.replace_site_data, parsed)
        except PayloadTooLarge:
            logger.info("Import too large for a single request, switching to chunked updates")
            sync, error = await self._push_in_chunks(parsed)
        except (TradesiteError, PydanticValidationError) as e:
            sync, error = self._classify("import site data", e)
        else:
            sync, error = SyncStatus.SYNCED, None

        if cache_error is not None:
            if sync != SyncStatus.SYNCED:
                # Neither the server nor the cache holds the import
                raise cache_error
            error = f"Imported document not cached locally: {cache_error}"
        return WriteResult(parsed, sync, error)

    def _cache_import(self, doc: SiteData) -> Optional[StorageQuotaError]:
        """Cache an imported document; an overflow is returned, not raised.

        Imports may exceed the cache quota. The stale cached document is
        dropped so an offline reload never resurrects the pre-import state.
        """
        try:
            self.cache.save_document(doc)
        except StorageQuotaError as e:
            logger.warning("Imported document does not fit in the local cache: %s", e)
            self.cache.remove_item(SITE_DATA_KEY)
            return e
        return None

    async def _push_in_chunks(self, doc: SiteData) -> Tuple[SyncStatus, Optional[str]]:
        data = doc.model_dump(mode="json")
        batch_size = max(1, self.settings.import_batch_size)
        keep = {p.id for p in doc.products}
        try:
            remote_products = await self._call_remote(self.gateway.list_products)
            for stale in [p.id for p in remote_products if p.id not in keep]:
                try:
                    await self._call_remote(self.gateway.delete_product, stale)
                except NotFoundError:
                    pass

            for name in SECTIONS:
                await self._call_remote(self.gateway.update_section, name, data[name])

            for start in range(0, len(doc.products), batch_size):
                batch = doc.products[start:start + batch_size]
                await self._call_remote(self.gateway.upsert_products_batch, batch)
        except (TradesiteError, PydanticValidationError) as e:
            return self._classify("chunked import", e)

        logger.info(
            "Chunked import synced %d sections and %d products", len(SECTIONS), len(doc.products)
        )
        return SyncStatus.SYNCED, None

    # ---------- admin ----------

    def verify_admin_password(self, password: str) -> bool:
        expected = self._document.settings.adminPassword
        if not expected:
            return False
        return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))
