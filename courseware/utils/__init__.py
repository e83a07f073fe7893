# Utils package
from .decorators import instructor_required, current_user
from .documents import delete_part_documents_cache, part_documents_cache_key
from .mime import extension_for, is_canonical, is_supported_document
