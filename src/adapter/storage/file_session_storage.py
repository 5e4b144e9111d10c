"""JSON-file implementation of SessionStorage.

The local-storage equivalent for a desktop or CLI client: one small JSON
object on disk mapping keys to string values. Writes go through a temp file
and an atomic rename so a crash never leaves a half-written file.
"""

import asyncio
import json
import logging
import os
from pathlib import Path

from domain.model.errors import RemoteError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FILE = Path.home() / '.promptshelf' / 'session.json'


class FileSessionStorage:
    def __init__(self, path: Path | str = DEFAULT_SESSION_FILE):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Session file is corrupt, starting fresh", extra={"path": str(self.path)})
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        tmp_path.write_text(json.dumps(data), encoding='utf-8')
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)

    async def get(self, key: str) -> str | None:
        try:
            data = await asyncio.to_thread(self._read_all)
        except OSError as e:
            logger.error("Failed to read session file", extra={"path": str(self.path), "error": str(e)})
            raise RemoteError("Failed to read session storage") from e
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
                data[key] = value
                await asyncio.to_thread(self._write_all, data)
            except OSError as e:
                logger.error("Failed to write session file", extra={"path": str(self.path), "error": str(e)})
                raise RemoteError("Failed to write session storage") from e

    async def delete(self, key: str) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
                if key not in data:
                    return
                del data[key]
                await asyncio.to_thread(self._write_all, data)
            except OSError as e:
                logger.error("Failed to write session file", extra={"path": str(self.path), "error": str(e)})
                raise RemoteError("Failed to write session storage") from e
