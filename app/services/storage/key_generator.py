from pathlib import Path
from uuid import uuid4
import re

# Extensions used when the upload carries no usable filename.
_CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
}


class KeyGenerator:
    @staticmethod
    def _safe_extension(filename: str | None) -> str:
        if not filename:
            return ""
        ext = Path(filename).suffix.lower()
        return ext if re.fullmatch(r"\.[a-z0-9]{1,10}", ext) else ""

    @staticmethod
    def profile_image_key(filename: str | None, content_type: str | None = None) -> str:
        ext = KeyGenerator._safe_extension(filename)
        if not ext and content_type:
            ext = _CONTENT_TYPE_EXTENSIONS.get(content_type.split(";")[0].strip().lower(), "")
        return f"profile-images/{uuid4().hex}{ext}"
