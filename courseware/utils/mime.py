import os

PDF_MIME = 'application/pdf'

DOCUMENT_EXTENSIONS = {
    'application/pdf': '.pdf',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation': '.pptx',
    'application/vnd.ms-powerpoint': '.ppt',
    'application/msword': '.doc',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': '.docx',
    'text/plain': '.txt',
}


def is_supported_document(mime_type):
    return mime_type in DOCUMENT_EXTENSIONS


def is_canonical(mime_type):
    """PDF is the only format that can be distributed without conversion"""
    return mime_type == PDF_MIME


def extension_for(mime_type, filename=None):
    """Extension for a document, falling back to the filename, then .bin"""
    if mime_type in DOCUMENT_EXTENSIONS:
        return DOCUMENT_EXTENSIONS[mime_type]
    ext = os.path.splitext(filename or '')[1].lower()
    return ext or '.bin'
