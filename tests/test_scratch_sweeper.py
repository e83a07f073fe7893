import os
import time

from courseware.services import scratch
from courseware.services.scheduler import sweep_upload_scratch
from tests.conftest import CHUNK_SIZE


def _age(path, seconds):
    past = time.time() - seconds
    os.utime(path, (past, past))


def test_sweep_removes_only_orphaned_and_old_dirs(app, services, users, part):
    root = app.config["UPLOAD_SCRATCH_DIR"]
    user = users["instructor"]
    live = services.chunk_receiver.init_upload(user, "a.pdf", CHUNK_SIZE, 1, "application/pdf", part.id)
    expired = services.chunk_receiver.init_upload(user, "b.pdf", CHUNK_SIZE, 1, "application/pdf", part.id)
    services.session_store.client.delete(f"upload:session:{expired}")
    fresh_orphan = scratch.session_dir(root, "just-created")
    os.makedirs(fresh_orphan)

    for name in (live, expired):
        _age(scratch.session_dir(root, name), 7200)

    removed = scratch.sweep_scratch(root, services.session_store, max_age=3600)

    assert removed == [expired]
    assert os.path.isdir(scratch.session_dir(root, live))
    assert os.path.isdir(fresh_orphan)
    assert not os.path.exists(scratch.session_dir(root, expired))


def test_sweep_of_missing_root_is_empty(services, tmp_path):
    assert scratch.sweep_scratch(str(tmp_path / "nothing"), services.session_store, 60) == []


def test_scheduled_sweep_uses_app_config(app, services, tmp_path):
    orphan = scratch.session_dir(app.config["UPLOAD_SCRATCH_DIR"], "orphan")
    os.makedirs(orphan)
    scratch.write_chunk(orphan, 0, b"leftover")
    _age(orphan, app.config["UPLOAD_SESSION_TTL"] + 60)

    assert sweep_upload_scratch(app) == ["orphan"]
    assert not os.path.exists(orphan)
