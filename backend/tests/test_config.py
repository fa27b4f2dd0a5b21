"""
Chirp Backend — Settings Tests
================================

What we test:
    ✅ Enumerated settings are normalized and validated
    ✅ Production checks flag weak JWT secrets and missing Cloudinary keys
    ✅ Media host selection follows MEDIA_BACKEND
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from chirp.config import Settings
from chirp.services.cloudinary_service import CloudinaryMediaHost
from chirp.services.local_media_service import LocalMediaHost
from chirp.services.media import build_media_host

STRONG_SECRET = "x" * 48


class TestSettings:

    def test_values_are_normalized(self):
        config = Settings(log_level="debug", environment="PRODUCTION", media_backend="Local")
        assert config.log_level == "DEBUG"
        assert config.is_production
        assert config.media_backend == "local"

    def test_unknown_environment_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(environment="staging")

    def test_token_lifetime_matches_cookie_age(self):
        assert Settings(jwt_expires_days=15).token_max_age_seconds == 15 * 24 * 60 * 60


class TestProductionChecks:

    def test_default_secret_is_reported(self):
        with pytest.raises(ValueError, match="JWT_SECRET"):
            Settings(jwt_secret="chirp-dev-secret-change-me").validate_required_for_production()

    def test_short_secret_is_reported(self):
        with pytest.raises(ValueError, match="too short"):
            Settings(jwt_secret="tiny-but-unique").validate_required_for_production()

    def test_cloudinary_without_credentials_is_reported(self):
        config = Settings(jwt_secret=STRONG_SECRET, media_backend="cloudinary")
        with pytest.raises(ValueError, match="CLOUDINARY_CLOUD_NAME"):
            config.validate_required_for_production()

    def test_complete_configuration_passes(self):
        Settings(jwt_secret=STRONG_SECRET, media_backend="local").validate_required_for_production()


class TestMediaHostSelection:

    def test_local_backend(self, tmp_path):
        host = build_media_host(Settings(media_backend="local", storage_root=str(tmp_path)))
        assert isinstance(host, LocalMediaHost)

    def test_cloudinary_backend(self):
        host = build_media_host(Settings(media_backend="cloudinary", cloudinary_cloud_name="demo"))
        assert isinstance(host, CloudinaryMediaHost)
