from flask import has_app_context

from courseware import cache


def part_documents_cache_key(part_id):
    return f"part_documents:{part_id}"


def delete_part_documents_cache(part_id):
    """Drop the cached document listing of a part after any asset change"""
    if has_app_context():
        cache.delete(part_documents_cache_key(part_id))
