# tradesite/db/blob_storage.py
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from tradesite.core.errors import StorageError
from tradesite.db.storage import ShardStore

logger = logging.getLogger(__name__)


class BlobStorage(ShardStore):
    """Shards are named blobs (``<prefix>/<name>``) in a MongoDB collection.

    Used where the deployment has no durable filesystem. Each blob document
    looks like ``{_id: pathname, content, size, uploadedAt}``.
    """

    backend_name = "blob"

    def __init__(self, collection, prefix: str = "site-data"):
        self.collection = collection
        self.prefix = prefix.strip("/")

    def _blob_path(self, name: str) -> str:
        return f"{self.prefix}/{name}"

    async def head(self, name: str) -> Optional[Dict[str, Any]]:
        """Blob metadata without content, or None when the blob does not exist."""
        return await self.collection.find_one(
            {"_id": self._blob_path(name)}, {"size": 1, "uploadedAt": 1}
        )

    async def read_shard(self, name: str) -> Optional[str]:
        blob_path = self._blob_path(name)
        info = await self.head(name)
        if info is None:
            return None

        blob = await self.collection.find_one({"_id": blob_path}, {"content": 1})
        if blob is None or not isinstance(blob.get("content"), str):
            logger.warning("Blob %s vanished or has no content after head()", blob_path)
            return None
        return blob["content"]

    async def write_shard(self, name: str, content: str) -> None:
        blob_path = self._blob_path(name)
        document = {
            "_id": blob_path,
            "content": content,
            "size": len(content.encode("utf-8")),
            "uploadedAt": datetime.now(timezone.utc),
        }
        try:
            await self.collection.replace_one({"_id": blob_path}, document, upsert=True)
        except PyMongoError as e:
            logger.error("Error writing blob %s: %s", blob_path, e)
            raise StorageError(f"Failed to write {name}: {e}") from e

        # Read back so the next get_document() is guaranteed to see this write
        stored = await self.read_shard(name)
        if stored is None:
            raise StorageError(f"Blob {blob_path} not readable after write")
        if stored.strip() != content.strip():
            logger.warning("Content mismatch for %s after write", blob_path)

    async def delete_shard(self, name: str) -> bool:
        result = await self.collection.delete_one({"_id": self._blob_path(name)})
        return result.deleted_count > 0

    async def list_shards(self, prefix: str) -> List[str]:
        full_prefix = self._blob_path(prefix)
        cursor = self.collection.find({"_id": {"$regex": f"^{re.escape(full_prefix)}"}}, {"_id": 1})
        blobs = await cursor.to_list(None)
        start = len(self.prefix) + 1
        return sorted(blob["_id"][start:] for blob in blobs)
