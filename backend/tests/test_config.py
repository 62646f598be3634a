import pytest

from clinic_api.config import Settings

def _settings(**overrides):
    values = {"jwt_secret_key": "secret", "credential_delivery": "response", "_env_file": None}
    values.update(overrides)
    return Settings(**values)

class TestRequiredSettings:

    def test_complete_configuration(self):
        assert _settings().missing_required() == []

    def test_missing_jwt_secret(self):
        assert _settings(jwt_secret_key=None).missing_required() == ["JWT_SECRET_KEY"]

    def test_s3_needs_credentials(self):
        missing = _settings(storage_provider="s3").missing_required()
        assert missing == ["S3_ENDPOINT", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"]

    def test_invite_delivery_needs_sendgrid_key(self):
        assert _settings(credential_delivery="invite").missing_required() == ["SENDGRID_API_KEY"]
        assert _settings(credential_delivery="invite", sendgrid_api_key="SG.key").missing_required() == []

    def test_startup_exits_when_secret_missing(self):
        with pytest.raises(SystemExit) as exc_info:
            _settings(jwt_secret_key=None).ensure_required()
        assert exc_info.value.code == 1

def test_list_properties():
    settings = _settings(allowed_mime_types="application/pdf, image/png,", max_file_size_mb=2)

    assert settings.allowed_mime_types_list == ["application/pdf", "image/png"]
    assert settings.max_file_size_bytes == 2 * 1024 * 1024
