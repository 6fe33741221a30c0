import pytest


@pytest.fixture
def workflow_dirs(tmp_path):
    """Fresh watch/done/failed directories for one scenario."""
    dirs = {
        "WATCH": tmp_path / "watch",
        "DONE": tmp_path / "done",
        "FAILED": tmp_path / "failed",
    }
    dirs["WATCH"].mkdir()
    return dirs
