"""Local cache store.

A small string key-value store persisted on disk, standing in for browser
local storage: it holds the last-known-good site document and inquiry list.
Unparsable entries are treated as absent; failed writes raise
``StorageQuotaError`` because nothing else can be done with them.
"""

import json
import logging
import os
import re
import uuid
from pathlib import Path
from typing import List, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tradesite.core.errors import StorageQuotaError
from tradesite.models.inquiry import Inquiry
from tradesite.models.site import SiteData

logger = logging.getLogger(__name__)

SITE_DATA_KEY = "site-data"
INQUIRIES_KEY = "inquiries"

_inquiry_list = TypeAdapter(List[Inquiry])


class LocalCache:
    def __init__(self, cache_dir: Union[str, Path], quota_bytes: int = 5 * 1024 * 1024):
        self.cache_dir = Path(cache_dir)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        if not re.fullmatch(r"[A-Za-z0-9_.\-]+", key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.cache_dir / f"{key}.json"

    def _used_bytes(self, exclude: str) -> int:
        if not self.cache_dir.is_dir():
            return 0
        return sum(
            p.stat().st_size
            for p in self.cache_dir.glob("*.json")
            if p.name != f"{exclude}.json"
        )

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read cache entry %s: %s", key, e)
            return None

    def set_item(self, key: str, value: str) -> None:
        data = value.encode("utf-8")
        path = self._path(key)
        try:
            if self._used_bytes(exclude=key) + len(data) > self.quota_bytes:
                raise StorageQuotaError(
                    f"Cache quota of {self.quota_bytes} bytes exceeded writing {key!r}"
                )
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{key}.{uuid.uuid4().hex}.tmp")
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageQuotaError(f"Could not write cache entry {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    # ---------- typed accessors ----------

    def load_document(self) -> Optional[SiteData]:
        text = self.get_item(SITE_DATA_KEY)
        if text is None:
            return None
        try:
            return SiteData.model_validate_json(text)
        except PydanticValidationError:
            logger.warning("Cached site data is corrupt, ignoring it")
            return None

    def save_document(self, doc: SiteData) -> None:
        self.set_item(SITE_DATA_KEY, doc.model_dump_json())

    def load_inquiries(self) -> Optional[List[Inquiry]]:
        text = self.get_item(INQUIRIES_KEY)
        if text is None:
            return None
        try:
            return _inquiry_list.validate_json(text)
        except PydanticValidationError:
            logger.warning("Cached inquiries are corrupt, ignoring them")
            return None

    def save_inquiries(self, inquiries: List[Inquiry]) -> None:
        self.set_item(INQUIRIES_KEY, json.dumps(_inquiry_list.dump_python(inquiries, mode="json")))
