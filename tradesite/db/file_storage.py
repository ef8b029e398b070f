# tradesite/db/file_storage.py
import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional, Union

from tradesite.core.errors import StorageError
from tradesite.db.storage import ShardStore

logger = logging.getLogger(__name__)


class FileStorage(ShardStore):
    """Shards are files under ``data_dir`` (``products/<id>.json`` are subdirectories)."""

    backend_name = "file"

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        path = (self.data_dir / name).resolve()
        if self.data_dir.resolve() not in path.parents:
            raise StorageError(f"Shard name escapes data directory: {name}")
        return path

    def _read(self, name: str) -> Optional[str]:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Error reading file %s: %s", name, e)
            return None

    def _write(self, name: str, content: str) -> None:
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file first so readers never see a half-written shard
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp.write_text(content, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            logger.error("Error writing file %s: %s", name, e)
            raise StorageError(f"Failed to write {name}") from e

    def _delete(self, name: str) -> bool:
        path = self._path(name)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def _list(self, prefix: str) -> List[str]:
        base = self.data_dir.resolve()
        directory = base / prefix.rsplit("/", 1)[0] if "/" in prefix else base
        if not directory.is_dir():
            return []
        names = []
        for path in directory.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            name = path.relative_to(base).as_posix()
            if name.startswith(prefix):
                names.append(name)
        return sorted(names)

    async def read_shard(self, name: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, name)

    async def write_shard(self, name: str, content: str) -> None:
        await asyncio.to_thread(self._write, name, content)

    async def delete_shard(self, name: str) -> bool:
        return await asyncio.to_thread(self._delete, name)

    async def list_shards(self, prefix: str) -> List[str]:
        return await asyncio.to_thread(self._list, prefix)
