"""Operator commands: ``flask documents replay``."""

import logging

import click
from flask.cli import with_appcontext

from courseware import db
from courseware.models import DocumentAsset, RenderStatus
from courseware.services import get_services
from courseware.services.render_queue import RENDER_JOB_NAME, RenderJob
from courseware.utils.documents import delete_part_documents_cache

LOGGER = logging.getLogger(__name__)

documents_cli = click.Group('documents', help='Document pipeline maintenance.')


def replay_asset(asset, services):
    """Re-enqueue a FAILED secure asset whose staged source still exists"""
    if asset.render_status != RenderStatus.FAILED:
        return False, f"{asset.id}: status is {asset.render_status.name}, only FAILED assets are replayed"
    if not asset.is_secure or not asset.source_key:
        return False, f"{asset.id}: no staged source to replay"
    if not services.storage.exists(asset.source_key):
        return False, f"{asset.id}: staged source {asset.source_key} is gone, upload the document again"

    asset.mark_processing()
    db.session.commit()
    delete_part_documents_cache(asset.part_id)

    job = RenderJob(
        source_key=asset.source_key,
        source_mime=asset.source_mime or '',
        original_name=asset.display_name or asset.title,
        asset_id=asset.id,
        brand_label=services.router.brand_label,
    )
    try:
        job_id = services.render_queue.enqueue(RENDER_JOB_NAME, job.to_payload())
    except Exception:
        asset.mark_failed()
        db.session.commit()
        raise
    return True, f"{asset.id}: queued as job {job_id}"


@documents_cli.command('replay')
@click.argument('asset_ids', nargs=-1)
@click.option('--all-failed', is_flag=True, help='Replay every FAILED secure document.')
@with_appcontext
def replay_command(asset_ids, all_failed):
    """Re-stage and re-enqueue failed render jobs."""
    if not asset_ids and not all_failed:
        raise click.UsageError('Pass asset ids or --all-failed')

    if all_failed:
        assets = DocumentAsset.query.filter_by(render_status=RenderStatus.FAILED, is_secure=True).all()
    else:
        assets = []
        for asset_id in asset_ids:
            asset = db.session.get(DocumentAsset, asset_id)
            if asset is None:
                click.echo(f"{asset_id}: not found", err=True)
                continue
            assets.append(asset)

    services = get_services()
    queued = 0
    for asset in assets:
        ok, message = replay_asset(asset, services)
        queued += int(ok)
        click.echo(message, err=not ok)
    click.echo(f"Queued {queued} of {len(assets)} documents.")
