"""Error taxonomy shared by the upload pipeline and the HTTP layer."""


class CoursewareError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class InvalidRequest(CoursewareError):
    status_code = 400


class Forbidden(CoursewareError):
    status_code = 403


class NotFound(CoursewareError):
    status_code = 404


class Locked(CoursewareError):
    """Asset exists but is not readable yet; clients should poll."""
    status_code = 423


class SessionConflict(CoursewareError):
    """Upload session id collision or a session too contended to update."""
    status_code = 409


class ConfigurationError(Exception):
    """Raised at startup when the configuration is unusable."""


class StorageError(Exception):
    """Raised by object storage backends."""


class ObjectNotFound(StorageError):
    pass


class ConversionError(Exception):
    """Raised when a document cannot be normalized to PDF."""


class RenderError(Exception):
    """Failure of a render job step, tagged with its category."""

    category = 'RENDER_FAILED'


class SourceNotFound(RenderError):
    category = 'SOURCE_NOT_FOUND'


class ConvertFailed(RenderError):
    category = 'CONVERT_FAILED'


class UploadFailed(RenderError):
    category = 'UPLOAD_FAILED'


class DbUpdateFailed(RenderError):
    category = 'DB_UPDATE_FAILED'
