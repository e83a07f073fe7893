import logging

from flask import Blueprint, Response, jsonify
from flask_jwt_extended import jwt_required

from courseware import cache, db
from courseware.errors import CoursewareError, Forbidden, Locked, NotFound, ObjectNotFound
from courseware.models import DocumentAsset, Part
from courseware.processing import DocumentError, render_pdf_page
from courseware.routes.uploads import error_response
from courseware.services import get_services
from courseware.utils import current_user, part_documents_cache_key
from courseware.utils.mime import PDF_MIME

LOGGER = logging.getLogger(__name__)

documents_bp = Blueprint('documents', __name__)

PART_DOCUMENTS_CACHE_TIMEOUT = 300


def readable_asset(asset_id):
    asset = db.session.get(DocumentAsset, asset_id)
    if not asset:
        raise NotFound('Document not found')
    if not asset.part.can_read(current_user()):
        raise Forbidden('Access denied')
    return asset


def completed_asset(asset_id):
    """Readers never see the storage key of an asset that is not COMPLETED"""
    asset = readable_asset(asset_id)
    if not asset.is_completed or not asset.storage_key:
        raise Locked('Document is processing')
    return asset


def part_documents(part_id):
    key = part_documents_cache_key(part_id)
    documents = cache.get(key)
    if documents is None:
        assets = DocumentAsset.query.filter_by(part_id=part_id).order_by(DocumentAsset.order).all()
        documents = [asset.to_dict() for asset in assets]
        cache.set(key, documents, timeout=PART_DOCUMENTS_CACHE_TIMEOUT)
    return documents


@documents_bp.route('/documents/<asset_id>/metadata', methods=['GET'])
@jwt_required(optional=True)
def get_document_metadata(asset_id):
    """Metadata for the document viewer; pollable while rendering"""
    try:
        asset = readable_asset(asset_id)
        return jsonify({
            'id': asset.id,
            'title': asset.title,
            'display_name': asset.display_name or asset.title,
            'page_count': asset.page_count,
            'render_status': asset.render_status.name,
            'is_secure': asset.is_secure,
        }), 200
    except CoursewareError as e:
        return error_response(e)


@documents_bp.route('/documents/<asset_id>/stream', methods=['GET'])
@jwt_required(optional=True)
def stream_document(asset_id):
    """Stream a rendered document inline"""
    try:
        asset = completed_asset(asset_id)
        try:
            stream = get_services().storage.download_stream(asset.storage_key)
        except ObjectNotFound:
            raise NotFound('File not found in storage')

        response = Response(stream, mimetype=PDF_MIME if asset.is_secure else (asset.source_mime or PDF_MIME))
        response.headers['Content-Disposition'] = f'inline; filename="{asset.download_name()}"'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Cache-Control'] = 'private, no-store'
        return response
    except CoursewareError as e:
        return error_response(e)


@documents_bp.route('/documents/<asset_id>/pages/<int:page_number>', methods=['GET'])
@jwt_required(optional=True)
def render_document_page(asset_id, page_number):
    """Render one page of a completed document to PNG"""
    try:
        asset = completed_asset(asset_id)
        if page_number < 1 or (asset.page_count and page_number > asset.page_count):
            raise NotFound('Page not found')

        try:
            data = get_services().storage.download(asset.storage_key)
        except ObjectNotFound:
            raise NotFound('File not found in storage')
        try:
            png = render_pdf_page(data, page_number)
        except DocumentError:
            raise NotFound('Page not found')

        response = Response(png, mimetype='image/png')
        response.headers['Content-Disposition'] = f'inline; filename="page-{page_number}.png"'
        response.headers['Cache-Control'] = 'private, max-age=3600'
        return response
    except CoursewareError as e:
        return error_response(e)


@documents_bp.route('/parts/<part_id>/documents', methods=['GET'])
@jwt_required(optional=True)
def list_part_documents(part_id):
    """Documents of a part in display order"""
    try:
        part = db.session.get(Part, part_id)
        if not part:
            raise NotFound('Part not found')
        if not part.can_read(current_user()):
            raise Forbidden('Access denied')
        return jsonify({'part': part.to_dict(), 'documents': part_documents(part_id)}), 200
    except CoursewareError as e:
        return error_response(e)
