"""CLI fixtures: an isolated working directory with a prepopulated cache."""

from __future__ import annotations

from pathlib import Path

import pytest

from ftcrag.catalog import SourcePriority
from ftcrag.store.snapshot import save_snapshot


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """CWD = tmp_path, cache path pointed inside it, no API key in the environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FTCRAG_CACHE_PATH", str(tmp_path / "documents.json"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("FTCRAG_EMBEDDING_MODEL", raising=False)
    return tmp_path


@pytest.fixture
def cached(workdir: Path, make_doc) -> Path:
    """Write a snapshot so commands load it instead of fetching the catalog."""
    save_snapshot(
        workdir / "documents.json",
        [
            make_doc("sdk-servo", "Servo servo = hardwareMap.get(Servo.class, \"claw\"); servo.setPosition(0.5);"),
            make_doc("sdk-motor", "DcMotor motor = hardwareMap.get(DcMotor.class, \"lift\"); motor.setPower(1);"),
            make_doc(
                "ll-pipeline",
                "limelight.pipelineSwitch(1); LLResult result = limelight.getLatestResult();",
                priority=SourcePriority.LIMELIGHT,
            ),
        ],
    )
    return workdir / "documents.json"
