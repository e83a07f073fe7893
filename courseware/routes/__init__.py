# Routes package
from .documents import documents_bp
from .uploads import uploads_bp
