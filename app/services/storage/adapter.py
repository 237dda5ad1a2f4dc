import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath


class ImageStore(ABC):
    """Where profile images live, addressed by relative object keys."""

    @abstractmethod
    def save(self, key: str, content: bytes) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Delete the object; return False when nothing was stored under ``key``."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass


class LocalImageStore(ImageStore):
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        parts = PurePosixPath(key).parts if key and "\\" not in key else ()
        if not parts or parts[0] == "/" or ".." in parts:
            raise ValueError(f"Invalid object key: {key!r}")
        root = self.root.resolve()
        path = root.joinpath(*parts).resolve()
        if root not in path.parents:
            raise ValueError(f"Invalid object key: {key!r}")
        return path

    def save(self, key: str, content: bytes) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers never observe a partially written image.
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def exists(self, key: str) -> bool:
        try:
            return self._path_for(key).is_file()
        except ValueError:
            return False
