import logging

from flask import Blueprint, current_app, request, jsonify
from flask_jwt_extended import jwt_required

from courseware import db
from courseware.errors import CoursewareError, Forbidden, InvalidRequest, NotFound
from courseware.models import Part
from courseware.services import get_services
from courseware.utils import current_user, instructor_required

LOGGER = logging.getLogger(__name__)

uploads_bp = Blueprint('uploads', __name__)


def int_field(data, name, required=True):
    value = data.get(name)
    if value is None or value == '':
        if required:
            raise InvalidRequest(f"{name} is required")
        return None
    if isinstance(value, bool):
        raise InvalidRequest(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be an integer")


def bool_field(data, name, default=True):
    """Secure flags default to True when the client does not send them"""
    value = data.get(name)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', '1', 'yes')


def optional_bool_field(data, name):
    if data.get(name) in (None, ''):
        return None
    return bool_field(data, name)


def error_response(error):
    return jsonify(error.to_dict()), error.status_code


def internal_error(action):
    db.session.rollback()
    LOGGER.exception("Error in %s", action)
    return jsonify({'error': 'Internal server error'}), 500


@uploads_bp.route('/uploads/init', methods=['POST'])
@jwt_required()
@instructor_required
def init_upload():
    """Initialize a chunked upload session"""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No data provided'}), 400

        upload_id = get_services().chunk_receiver.init_upload(
            current_user(),
            filename=(data.get('filename') or '').strip(),
            file_size=int_field(data, 'fileSize'),
            total_chunks=int_field(data, 'totalChunks'),
            mime_type=data.get('mimeType') or '',
            part_id=data.get('targetContainerId'),
            secure=bool_field(data, 'secure'),
        )
        return jsonify({'uploadId': upload_id}), 201

    except CoursewareError as e:
        return error_response(e)
    except Exception:
        return internal_error('init_upload')


@uploads_bp.route('/uploads/chunk', methods=['POST'])
@jwt_required()
@instructor_required
def upload_chunk():
    """Upload a single chunk"""
    try:
        chunk = request.files.get('chunk')
        if not chunk:
            return jsonify({'error': 'No chunk data provided'}), 400

        upload_id = request.form.get('uploadId')
        if not upload_id:
            return jsonify({'error': 'uploadId is required'}), 400

        progress = get_services().chunk_receiver.upload_chunk(
            current_user(),
            upload_id,
            chunk_index=int_field(request.form, 'chunkIndex'),
            total_chunks=int_field(request.form, 'totalChunks', required=False),
            data=chunk.read(),
        )
        return jsonify(progress), 200

    except CoursewareError as e:
        return error_response(e)
    except Exception:
        return internal_error('upload_chunk')


@uploads_bp.route('/uploads/finalize', methods=['POST'])
@jwt_required()
@instructor_required
def finalize_upload():
    """Assemble all chunks and complete the upload"""
    try:
        data = request.get_json(silent=True)
        if not data or not data.get('uploadId'):
            return jsonify({'error': 'uploadId is required'}), 400

        result = get_services().assembler.finalize(
            current_user(),
            data['uploadId'],
            part_id=data.get('targetContainerId'),
            secure=optional_bool_field(data, 'secure'),
        )
        return jsonify({
            'storageKey': result.storage_key,
            'assetId': result.asset.id,
            'status': result.asset.render_status.name,
        }), 200

    except CoursewareError as e:
        return error_response(e)
    except Exception:
        return internal_error('finalize_upload')


@uploads_bp.route('/uploads/<upload_id>', methods=['GET'])
@jwt_required()
@instructor_required
def get_upload_status(upload_id):
    """Received and missing chunks of an in-flight upload"""
    try:
        return jsonify(get_services().chunk_receiver.status(current_user(), upload_id)), 200
    except CoursewareError as e:
        return error_response(e)


@uploads_bp.route('/uploads/<upload_id>', methods=['DELETE'])
@jwt_required()
@instructor_required
def abort_upload(upload_id):
    """Discard an upload session and its chunks"""
    try:
        get_services().chunk_receiver.abort(current_user(), upload_id)
        return jsonify({'message': 'Upload cancelled successfully'}), 200
    except CoursewareError as e:
        return error_response(e)


@uploads_bp.route('/parts/<part_id>/documents', methods=['POST'])
@jwt_required()
@instructor_required
def upload_document(part_id):
    """Single-request upload for small documents"""
    try:
        file = request.files.get('file')
        if not file or not file.filename:
            return jsonify({'error': 'No file uploaded'}), 400

        part = db.session.get(Part, part_id)
        if not part:
            raise NotFound('Part not found')
        if not current_user().can_manage(part):
            raise Forbidden('Access denied')

        file.stream.seek(0, 2)
        size = file.stream.tell()
        file.stream.seek(0)
        limit = current_app.config['UPLOAD_MAX_DOCUMENT_SIZE']
        if size > limit:
            raise InvalidRequest(f"File too large. Maximum size is {limit // (1024 * 1024)}MB")
        if size == 0:
            raise InvalidRequest('Uploaded file is empty')

        result = get_services().router.ingest(
            part,
            file.stream,
            file.filename,
            file.mimetype,
            secure=optional_bool_field(request.form, 'secure'),
            title=request.form.get('title'),
        )
        if result.queued:
            return jsonify(result.to_dict()), 202
        return jsonify(result.to_dict()), 201

    except CoursewareError as e:
        return error_response(e)
    except Exception:
        return internal_error('upload_document')
