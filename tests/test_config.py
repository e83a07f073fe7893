import fakeredis
import pytest

from config import TestingConfig
from courseware import create_app
from courseware.errors import ConfigurationError


def _build(tmp_path, **overrides):
    values = {"UPLOAD_SCRATCH_DIR": str(tmp_path / "scratch"), "STORAGE_LOCAL_ROOT": str(tmp_path / "storage")}
    values.update(overrides)
    return create_app("testing", config_overrides=values,
                      redis_client=fakeredis.FakeRedis(server=fakeredis.FakeServer()))


def test_testing_defaults():
    assert TestingConfig.TESTING is True
    assert TestingConfig.STORAGE_BACKEND == "local"
    assert TestingConfig.UPLOAD_SWEEPER_ENABLED is False


def test_default_limits(tmp_path):
    app = _build(tmp_path)

    assert app.config["UPLOAD_CHUNK_SIZE"] == 5 * 1024 * 1024
    assert app.config["UPLOAD_MAX_FILE_SIZE"] == 500 * 1024 * 1024
    assert app.config["UPLOAD_SESSION_TTL"] == 3600
    assert app.config["RENDER_QUEUE_NAME"] == "pdf-processing"


@pytest.mark.parametrize("overrides", [
    {"UPLOAD_CHUNK_SIZE": 0},
    {"UPLOAD_SESSION_TTL": "3600"},
    {"UPLOAD_CHUNK_SIZE": 10, "UPLOAD_MAX_FILE_SIZE": 5},
    {"STORAGE_BACKEND": "ftp"},
    {"STORAGE_BACKEND": "http", "STORAGE_ZONE": "", "STORAGE_API_KEY": ""},
    {"WATERMARK_BRAND": ""},
])
def test_invalid_configuration_fails_fast(tmp_path, overrides):
    with pytest.raises(ConfigurationError):
        _build(tmp_path, **overrides)
