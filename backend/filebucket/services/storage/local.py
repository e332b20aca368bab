"""Local disk storage rooted at settings.uploads_dir."""
import os
import tempfile
from pathlib import Path

from filebucket.core.config import get_settings
from filebucket.services.storage.base import StorageBackend


class LocalStorage(StorageBackend):
    """Objects are plain files under the root; writes go through a temp file and an atomic rename."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root if root is not None else get_settings().uploads_dir)

    @property
    def root(self) -> Path:
        return self._root

    def absolute_path(self, relative_path: str) -> Path:
        return self._root / relative_path

    def write_bytes(self, relative_path: str, data: bytes) -> int:
        path = self.absolute_path(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return len(data)

    def head_object(self, relative_path: str) -> dict:
        path = self.absolute_path(relative_path)
        if not path.is_file():
            raise FileNotFoundError(f"Object not found: {relative_path}")
        return {"content_length": path.stat().st_size}

    def remove(self, relative_path: str) -> None:
        os.remove(self.absolute_path(relative_path))
