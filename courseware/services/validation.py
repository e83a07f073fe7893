"""Startup checks for the upload pipeline configuration."""

from courseware.errors import ConfigurationError

POSITIVE_INT_KEYS = (
    'UPLOAD_CHUNK_SIZE',
    'UPLOAD_MAX_FILE_SIZE',
    'UPLOAD_MAX_DOCUMENT_SIZE',
    'UPLOAD_SESSION_TTL',
    'UPLOAD_SWEEP_INTERVAL',
    'CONVERT_TIMEOUT',
)


def validate_config(app):
    """Fail fast when limits or storage credentials are unusable"""
    cfg = app.config
    for key in POSITIVE_INT_KEYS:
        value = cfg.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ConfigurationError(f"{key} must be a positive integer, got {value!r}")

    if cfg['UPLOAD_CHUNK_SIZE'] > cfg['UPLOAD_MAX_FILE_SIZE']:
        raise ConfigurationError('UPLOAD_CHUNK_SIZE cannot exceed UPLOAD_MAX_FILE_SIZE')

    backend = cfg.get('STORAGE_BACKEND')
    if backend not in ('http', 'local'):
        raise ConfigurationError(f"Unknown STORAGE_BACKEND {backend!r}")
    if backend == 'http' and not (cfg.get('STORAGE_ZONE') and cfg.get('STORAGE_API_KEY')):
        raise ConfigurationError('STORAGE_ZONE and STORAGE_API_KEY are required for the http storage backend')

    if not cfg.get('WATERMARK_BRAND'):
        raise ConfigurationError('WATERMARK_BRAND must not be empty')
