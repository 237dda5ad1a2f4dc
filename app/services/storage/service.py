from functools import lru_cache

from app.core.settings import settings
from app.services.storage.adapter import ImageStore, LocalImageStore


@lru_cache(maxsize=1)
def get_image_store() -> ImageStore:
    return LocalImageStore(settings.upload_dir)
