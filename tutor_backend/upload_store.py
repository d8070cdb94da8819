"""
Avatar storage backends.

Two interchangeable stores keep uploaded profile photos:

- MemoryUploadStore: process-local map with a fixed time-to-live, for
  serverless deployments without a writable disk. Entries are dropped when
  read after expiry and by a periodic sweep. Contents are lost on restart.
- DiskUploadStore: files under a directory, kept until deleted.

Both are safe to share between request threads.
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .constants import DISK_UPLOAD_CACHE_SECONDS, EXTENSION_CONTENT_TYPES, MEMORY_UPLOAD_CACHE_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    """An uploaded file and when it arrived."""
    filename: str
    content: bytes
    mime_type: str
    uploaded_at: float  # epoch seconds

    @property
    def size(self) -> int:
        return len(self.content)


class UploadStore:
    """Interface shared by the upload backends."""

    #: Seconds clients may cache a served file
    cache_max_age = 0

    def save(self, filename: str, content: bytes, mime_type: str) -> StoredFile:
        raise NotImplementedError

    def get(self, filename: str) -> Optional[StoredFile]:
        raise NotImplementedError

    def delete(self, filename: str) -> bool:
        raise NotImplementedError

    def list_files(self) -> List[StoredFile]:
        raise NotImplementedError

    def sweep(self) -> int:
        """Remove expired files. Returns how many were removed."""
        return 0


class MemoryUploadStore(UploadStore):
    """
    In-memory upload cache with a fixed expiry.

    Args:
        ttl_seconds: How long a file stays readable after upload
        clock: Source of the current time in epoch seconds
    """

    def __init__(self, ttl_seconds: int = 3600, cache_max_age: int = 1800, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.cache_max_age = cache_max_age
        self._clock = clock
        self._files: Dict[str, StoredFile] = {}
        self._lock = threading.Lock()

    def _is_expired(self, stored: StoredFile, now: float) -> bool:
        return stored.uploaded_at <= now - self.ttl_seconds

    def save(self, filename: str, content: bytes, mime_type: str) -> StoredFile:
        stored = StoredFile(filename=filename, content=content, mime_type=mime_type, uploaded_at=self._clock())
        with self._lock:
            self._files[filename] = stored
        return stored

    def get(self, filename: str) -> Optional[StoredFile]:
        with self._lock:
            stored = self._files.get(filename)
            if stored is None:
                return None
            if self._is_expired(stored, self._clock()):
                del self._files[filename]
                logger.debug(f"Upload {filename} expired on read")
                return None
            return stored

    def delete(self, filename: str) -> bool:
        with self._lock:
            return self._files.pop(filename, None) is not None

    def list_files(self) -> List[StoredFile]:
        now = self._clock()
        with self._lock:
            return [stored for stored in self._files.values() if not self._is_expired(stored, now)]

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [name for name, stored in self._files.items() if self._is_expired(stored, now)]
            for name in expired:
                del self._files[name]
        if expired:
            logger.info(f"Swept {len(expired)} expired uploads")
        return len(expired)


class DiskUploadStore(UploadStore):
    """
    Upload store backed by a directory. Files never expire.

    Args:
        directory: Where files are written (created if missing)
    """

    def __init__(self, directory: str, cache_max_age: int = 31536000):
        self.directory = Path(directory).resolve()
        self.directory.mkdir(parents=True, exist_ok=True)
        self.cache_max_age = cache_max_age
        self._lock = threading.Lock()

    def _path_for(self, filename: str) -> Path:
        """
        Resolve a filename inside the upload directory.

        Raises:
            ValueError: If the name would escape the directory (path traversal)
        """
        filepath = (self.directory / filename).resolve()
        if filepath.parent != self.directory:
            raise ValueError(f"Path traversal detected: {filename}")
        return filepath

    def save(self, filename: str, content: bytes, mime_type: str) -> StoredFile:
        filepath = self._path_for(filename)
        with self._lock:
            filepath.write_bytes(content)
        logger.info(f"Saved upload to {filepath}")
        return StoredFile(filename=filename, content=content, mime_type=mime_type, uploaded_at=filepath.stat().st_mtime)

    def get(self, filename: str) -> Optional[StoredFile]:
        try:
            filepath = self._path_for(filename)
        except ValueError:
            return None
        if not filepath.is_file():
            return None
        mime_type = EXTENSION_CONTENT_TYPES.get(filepath.suffix.lower(), "application/octet-stream")
        return StoredFile(
            filename=filename,
            content=filepath.read_bytes(),
            mime_type=mime_type,
            uploaded_at=filepath.stat().st_mtime,
        )

    def delete(self, filename: str) -> bool:
        try:
            filepath = self._path_for(filename)
        except ValueError:
            return False
        with self._lock:
            if not filepath.is_file():
                return False
            filepath.unlink()
        return True

    def list_files(self) -> List[StoredFile]:
        files = []
        for filepath in sorted(self.directory.iterdir()):
            if filepath.is_file():
                stored = self.get(filepath.name)
                if stored:
                    files.append(stored)
        return files


class UploadSweeper:
    """Background thread that periodically sweeps expired uploads."""

    def __init__(self, store: UploadStore, interval_seconds: float):
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.store.sweep()
            except Exception as e:
                logger.error(f"Upload sweep failed: {e}")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="upload-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Started upload sweeper (every {self.interval_seconds}s)")

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None


def create_upload_store(settings) -> UploadStore:
    """Build the store selected by UPLOAD_STORAGE."""
    if settings.upload_storage == "disk":
        logger.info(f"Avatar uploads stored on disk in {settings.upload_dir}")
        return DiskUploadStore(settings.upload_dir, cache_max_age=DISK_UPLOAD_CACHE_SECONDS)
    logger.info(f"Avatar uploads kept in memory for {settings.upload_ttl_seconds}s")
    return MemoryUploadStore(ttl_seconds=settings.upload_ttl_seconds, cache_max_age=MEMORY_UPLOAD_CACHE_SECONDS)
