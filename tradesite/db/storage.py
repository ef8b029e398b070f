"""Sharded document store.

The site document is persisted as one shard per section plus, for products
and inquiries, an id index shard and one record shard per id:

    settings.json, hero.json, ... seo.json    sections
    defaultLocale.txt                         raw locale scalar
    productIds.json, products/<id>.json       product index + records
    inquiryIds.json, inquiries/<id>.json      inquiry index + records

Backends only implement four primitives (read, write, delete, list); every
merge, index and defaulting rule lives here so both backends behave the same.
Record shards are always written before the index that references them and
removed from the index before they are deleted, so an interrupted write can
only leave an orphan record, never an index entry without a record.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from tradesite.core.errors import InvalidSectionError, NotFoundError, ValidationError
from tradesite.core.timeutils import parse_timestamp, utc_now_iso
from tradesite.data.defaults import deep_merge, default_section
from tradesite.models.inquiry import Inquiry, InquiryCreate
from tradesite.models.legacy import normalize_locale_scalar
from tradesite.models.product import Product
from tradesite.models.site import SECTIONS, RepairReport, SiteData, validate_section

logger = logging.getLogger(__name__)

SCALAR_SECTIONS = {"defaultLocale"}
LEGACY_LOCALE_SHARD = "defaultLocale.json"

PRODUCT_INDEX = "productIds.json"
PRODUCT_PREFIX = "products/"
INQUIRY_INDEX = "inquiryIds.json"
INQUIRY_PREFIX = "inquiries/"


def _errors(e: PydanticValidationError) -> List[Dict[str, Any]]:
    return e.errors(include_url=False, include_context=False)


def shard_name(section: str) -> str:
    if section in SCALAR_SECTIONS:
        return f"{section}.txt"
    return f"{section}.json"


class ShardStore:
    """Backend-independent implementation of the site document contract."""

    backend_name = "abstract"

    # ---------- primitives (implemented by backends) ----------

    async def read_shard(self, name: str) -> Optional[str]:
        """Return the shard content, or None when it does not exist."""
        raise NotImplementedError

    async def write_shard(self, name: str, content: str) -> None:
        raise NotImplementedError

    async def delete_shard(self, name: str) -> bool:
        """Delete a shard. Returns False when it did not exist."""
        raise NotImplementedError

    async def list_shards(self, prefix: str) -> List[str]:
        """Names of all shards starting with ``prefix``."""
        raise NotImplementedError

    async def close(self) -> None:
        return None

    # ---------- JSON helpers ----------

    async def _read_json(self, name: str, default: Any = None) -> Any:
        text = await self.read_shard(name)
        if text is None:
            return default
        text = text.strip()
        if not text or text == "null":
            logger.warning("Shard %s is empty, using default", name)
            return default
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("Shard %s holds invalid JSON, using default", name)
            return default

    async def _write_json(self, name: str, data: Any) -> None:
        await self.write_shard(name, json.dumps(data, ensure_ascii=False, indent=2))

    # ---------- sections ----------

    async def _read_default_locale(self) -> str:
        raw = await self.read_shard(shard_name("defaultLocale"))
        legacy = False
        if raw is None or not raw.strip():
            # Older deployments stored the locale JSON-encoded in defaultLocale.json
            raw = await self.read_shard(LEGACY_LOCALE_SHARD)
            legacy = True
            if raw is None or not raw.strip():
                return default_section("defaultLocale")

        value = normalize_locale_scalar(raw)
        try:
            value = validate_section("defaultLocale", value)
        except PydanticValidationError:
            logger.warning("Unreadable defaultLocale %r, using default", raw)
            return default_section("defaultLocale")

        if legacy or value != raw.strip():
            logger.info("Migrating legacy defaultLocale %r -> %r", raw, value)
            await self.write_shard(shard_name("defaultLocale"), value)
            await self.delete_shard(LEGACY_LOCALE_SHARD)
        return value

    async def _read_section(self, name: str) -> Any:
        if name in SCALAR_SECTIONS:
            return await self._read_default_locale()

        skeleton = default_section(name)
        raw = await self._read_json(shard_name(name), None)
        if raw is None:
            return skeleton
        if isinstance(skeleton, dict):
            if not isinstance(raw, dict):
                logger.warning("Section %s is not an object, using default", name)
                return skeleton
            value = deep_merge(skeleton, raw)
        else:
            value = raw if raw else skeleton

        try:
            return validate_section(name, value)
        except PydanticValidationError as e:
            logger.warning("Section %s failed validation (%s), using default", name, e.error_count())
            return skeleton

    async def get_section(self, name: str) -> Any:
        if name not in SECTIONS:
            raise InvalidSectionError(name)
        return await self._read_section(name)

    async def update_section(self, name: str, value: Any) -> Any:
        """Validate and persist one section. Returns the stored value."""
        if name not in SECTIONS:
            raise InvalidSectionError(name)

        if name in SCALAR_SECTIONS:
            value = normalize_locale_scalar(value)
        try:
            clean = validate_section(name, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid value for section {name}", _errors(e)) from e

        if name in SCALAR_SECTIONS:
            # Scalars are stored raw, never JSON-encoded
            await self.write_shard(shard_name(name), clean)
            await self.delete_shard(LEGACY_LOCALE_SHARD)
        else:
            await self._write_json(shard_name(name), clean)
        logger.info("Updated section %s", name)
        return clean

    # ---------- generic indexed collections ----------

    async def _read_index(self, index: str) -> List[str]:
        ids = await self._read_json(index, [])
        if not isinstance(ids, list):
            logger.warning("Index %s is not a list, treating as empty", index)
            return []
        return [i for i in ids if isinstance(i, str)]

    async def _read_record(self, prefix: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = await self._read_json(f"{prefix}{record_id}.json", None)
        if not isinstance(record, dict):
            return None
        return record

    async def _read_records(
        self, prefix: str, ids: List[str]
    ) -> Tuple[List[Dict[str, Any]], List[str]]:
        records = await asyncio.gather(*(self._read_record(prefix, i) for i in ids))
        found, missing = [], []
        for record_id, record in zip(ids, records):
            if record is None:
                missing.append(record_id)
            else:
                found.append(record)
        return found, missing

    async def _orphans(self, prefix: str, ids: List[str]) -> List[str]:
        indexed = set(ids)
        names = await self.list_shards(prefix)
        orphans = []
        for name in names:
            record_id = name[len(prefix):]
            if record_id.endswith(".json"):
                record_id = record_id[: -len(".json")]
            if record_id not in indexed:
                orphans.append(record_id)
        return sorted(orphans)

    # ---------- products ----------

    async def _load_products(self) -> Tuple[List[Product], List[str]]:
        ids = await self._read_index(PRODUCT_INDEX)
        if not ids:
            return [], []
        records, missing = await self._read_records(PRODUCT_PREFIX, ids)
        products = []
        for record in records:
            try:
                products.append(Product.model_validate(record))
            except PydanticValidationError:
                logger.warning("Product record %s is invalid, skipping", record.get("id"))
                missing.append(str(record.get("id")))
        if missing:
            logger.warning("Product index references unreadable records: %s", missing)
        return products, missing

    async def list_products(self) -> List[Product]:
        products, _ = await self._load_products()
        return products

    async def get_product(self, product_id: str) -> Optional[Product]:
        record = await self._read_record(PRODUCT_PREFIX, product_id)
        if record is None:
            return None
        try:
            return Product.model_validate(record)
        except PydanticValidationError:
            logger.warning("Product record %s is invalid", product_id)
            return None

    def _stamp(self, product: Product, existing: Optional[Product]) -> Product:
        now = utc_now_iso()
        if existing is None:
            return product.model_copy(
                update={"createdAt": product.createdAt or now, "updatedAt": product.updatedAt or now}
            )
        # Replacing an existing record always moves its update time
        return product.model_copy(
            update={"createdAt": product.createdAt or existing.createdAt or now, "updatedAt": now}
        )

    async def upsert_product(self, product: Product) -> Tuple[Product, bool]:
        """Insert or replace a product. Returns (stored product, created)."""
        existing = await self.get_product(product.id)
        product = self._stamp(product, existing)

        await self._write_json(f"{PRODUCT_PREFIX}{product.id}.json", product.model_dump(mode="json"))

        ids = await self._read_index(PRODUCT_INDEX)
        created = product.id not in ids
        if created:
            # Newest first, matching the admin list
            await self._write_json(PRODUCT_INDEX, [product.id] + ids)
        return product, created

    async def upsert_products(self, products: List[Product]) -> List[Product]:
        """Bulk upsert. New ids are appended to the index in the given order."""
        stamped = []
        for product in products:
            stamped.append(self._stamp(product, await self.get_product(product.id)))

        await asyncio.gather(
            *(
                self._write_json(f"{PRODUCT_PREFIX}{p.id}.json", p.model_dump(mode="json"))
                for p in stamped
            )
        )
        ids = await self._read_index(PRODUCT_INDEX)
        new_ids = [p.id for p in stamped if p.id not in ids]
        if new_ids:
            await self._write_json(PRODUCT_INDEX, ids + list(dict.fromkeys(new_ids)))
        return stamped

    async def update_product(self, product_id: str, fields: Dict[str, Any]) -> Product:
        existing = await self.get_product(product_id)
        if existing is None:
            raise NotFoundError(f"Product {product_id} not found")

        merged = deep_merge(existing.model_dump(mode="json"), fields)
        merged["id"] = product_id
        merged["updatedAt"] = utc_now_iso()
        try:
            product = Product.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid update for product {product_id}", _errors(e)) from e

        await self._write_json(f"{PRODUCT_PREFIX}{product_id}.json", product.model_dump(mode="json"))
        ids = await self._read_index(PRODUCT_INDEX)
        if product_id not in ids:
            await self._write_json(PRODUCT_INDEX, [product_id] + ids)
        return product

    async def delete_product(self, product_id: str) -> None:
        ids = await self._read_index(PRODUCT_INDEX)
        record_name = f"{PRODUCT_PREFIX}{product_id}.json"
        if product_id in ids:
            await self._write_json(PRODUCT_INDEX, [i for i in ids if i != product_id])
            await self.delete_shard(record_name)
        elif not await self.delete_shard(record_name):
            raise NotFoundError(f"Product {product_id} not found")

        featured = await self._read_section("featuredProductIds")
        if product_id in featured:
            await self._write_json(
                shard_name("featuredProductIds"), [i for i in featured if i != product_id]
            )
        logger.info("Deleted product %s", product_id)

    async def _replace_products(self, products: List[Product]) -> None:
        old_ids = await self._read_index(PRODUCT_INDEX)
        await asyncio.gather(
            *(
                self._write_json(f"{PRODUCT_PREFIX}{p.id}.json", p.model_dump(mode="json"))
                for p in products
            )
        )
        new_ids = [p.id for p in products]
        await self._write_json(PRODUCT_INDEX, new_ids)
        stale = set(old_ids) - set(new_ids)
        await asyncio.gather(*(self.delete_shard(f"{PRODUCT_PREFIX}{i}.json") for i in stale))

    # ---------- inquiries ----------

    async def list_inquiries(self) -> List[Inquiry]:
        ids = await self._read_index(INQUIRY_INDEX)
        if not ids:
            return []
        records, missing = await self._read_records(INQUIRY_PREFIX, ids)
        if missing:
            logger.warning("Inquiry index references unreadable records: %s", missing)
        inquiries = []
        for record in records:
            try:
                inquiries.append(Inquiry.model_validate(record))
            except PydanticValidationError:
                logger.warning("Inquiry record %s is invalid, skipping", record.get("id"))
        return sorted(inquiries, key=lambda i: parse_timestamp(i.createdAt), reverse=True)

    async def create_inquiry(self, data: Union[InquiryCreate, Dict[str, Any]]) -> Inquiry:
        if isinstance(data, InquiryCreate):
            data = data.model_dump(mode="json")
        inquiry = Inquiry.model_validate(
            {
                **data,
                "id": f"inq-{uuid.uuid4().hex[:16]}",
                "createdAt": utc_now_iso(),
                "status": "new",
            }
        )
        await self._write_json(f"{INQUIRY_PREFIX}{inquiry.id}.json", inquiry.model_dump(mode="json"))
        ids = await self._read_index(INQUIRY_INDEX)
        await self._write_json(INQUIRY_INDEX, [inquiry.id] + ids)
        logger.info("Created inquiry %s", inquiry.id)
        return inquiry

    async def update_inquiry(self, inquiry_id: str, fields: Dict[str, Any]) -> Inquiry:
        record = await self._read_record(INQUIRY_PREFIX, inquiry_id)
        if record is None:
            raise NotFoundError(f"Inquiry {inquiry_id} not found")
        try:
            inquiry = Inquiry.model_validate({**record, **fields, "id": inquiry_id})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid update for inquiry {inquiry_id}", _errors(e)) from e
        await self._write_json(f"{INQUIRY_PREFIX}{inquiry_id}.json", inquiry.model_dump(mode="json"))
        return inquiry

    # ---------- whole document ----------

    async def get_document(self) -> Tuple[SiteData, RepairReport]:
        """Assemble the site document from its shards.

        Missing or corrupt shards fall back to typed defaults; product records
        that the index references but that cannot be read are listed in the
        returned report instead of failing the read.
        """
        section_values = await asyncio.gather(*(self._read_section(name) for name in SECTIONS))
        products, missing = await self._load_products()

        doc = dict(zip(SECTIONS, section_values))
        doc["products"] = [p.model_dump(mode="json") for p in products]
        return SiteData.model_validate(doc), RepairReport(missingProducts=missing)

    async def replace_document(self, doc: SiteData) -> None:
        data = doc.model_dump(mode="json")
        await asyncio.gather(*(self.update_section(name, data[name]) for name in SECTIONS))
        await self._replace_products(doc.products)
        logger.info("Replaced site document (%d products)", len(doc.products))

    async def repair_report(self) -> RepairReport:
        product_ids, inquiry_ids = await asyncio.gather(
            self._read_index(PRODUCT_INDEX), self._read_index(INQUIRY_INDEX)
        )
        (_, missing_products), (_, missing_inquiries), orphan_products, orphan_inquiries = (
            await asyncio.gather(
                self._read_records(PRODUCT_PREFIX, product_ids),
                self._read_records(INQUIRY_PREFIX, inquiry_ids),
                self._orphans(PRODUCT_PREFIX, product_ids),
                self._orphans(INQUIRY_PREFIX, inquiry_ids),
            )
        )
        return RepairReport(
            missingProducts=missing_products,
            orphanProducts=orphan_products,
            missingInquiries=missing_inquiries,
            orphanInquiries=orphan_inquiries,
        )

    async def initialize_default_data(self, doc: SiteData) -> bool:
        """Seed an empty store with ``doc``. Returns False when real data exists."""
        settings = await self._read_json(shard_name("settings"), None)
        site_name = settings.get("siteName") if isinstance(settings, dict) else None
        site_name = site_name.get("en", "") if isinstance(site_name, dict) else ""
        if isinstance(site_name, str) and site_name.strip():
            logger.info("Data already initialized, skipping")
            return False

        await self.replace_document(doc)
        if await self.read_shard(INQUIRY_INDEX) is None:
            await self._write_json(INQUIRY_INDEX, [])
        logger.info("Default data initialized (%s backend)", self.backend_name)
        return True
