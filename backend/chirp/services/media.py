"""
Chirp Backend — Media Host Selection
======================================

What:  Builds the process-wide media host from MEDIA_BACKEND.
Who:   PostService and UserService receive the instance at construction;
       the health route reports its status.
"""

import logging

from chirp.config import Settings, settings
from chirp.services.cloudinary_service import CloudinaryMediaHost
from chirp.services.local_media_service import LocalMediaHost
from chirp.services.media_base import MediaHost

logger = logging.getLogger(__name__)


def build_media_host(config: Settings = settings) -> MediaHost:
    if config.media_backend == "cloudinary":
        return CloudinaryMediaHost(config)
    return LocalMediaHost(
        storage_root=config.storage_root,
        url_prefix=config.media_url_prefix,
        max_size=config.max_image_size,
    )


media_host = build_media_host()
logger.info("Media backend: %s", settings.media_backend)
