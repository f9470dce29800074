from __future__ import annotations

from pathlib import Path

import pytest

from tod_batch.config import Config
from tod_batch.models import Project


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    """
    Config persisted to a temp file, so that ``Config.reload`` during a
    batch run reads back the same projects and timezone.
    """
    cfg = Config(
        path=tmp_path / "config.yaml",
        token="test-token",
        timezone="UTC",
        base_url="https://todoist.test",
        projects=[Project(id="123", name="myproject")],
    )
    cfg.save()
    return cfg


@pytest.fixture()
def project() -> Project:
    return Project(id="123", name="myproject")
