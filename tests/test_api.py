from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Optional

from fakes import FAKE_MP3, ScriptedEncoder
from fastapi.testclient import TestClient

from audioextract.config import Settings
from audioextract.encoder.base import FailureEvent, ProgressEvent, SuccessEvent
from audioextract.main import create_app

VIDEO = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 1024


def make_client(tmp_path: Path, encoder: Optional[ScriptedEncoder] = None, **overrides) -> TestClient:
    values = {
        "upload_dir": str(tmp_path / "uploads"),
        "output_dir": str(tmp_path / "outputs"),
        "ttl_sec": 3600,
        "sweep_interval_sec": 600,
        "max_concurrent_jobs": 1,
    }
    values.update(overrides)
    settings = Settings(_env_file=None, **values)
    app = create_app(settings=settings, encoder=encoder or ScriptedEncoder())
    return TestClient(app)


def upload(client: TestClient, content: bytes = VIDEO, content_type: str = "video/mp4", name: str = "clip.mp4"):
    return client.post("/api/upload", files={"file": (name, content, content_type)})


def wait_for_terminal(client: TestClient, job_id: str, timeout: float = 5.0) -> list:
    history = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/status/{job_id}").json()
        history.append(body)
        if body["status"] in ("done", "error"):
            return history
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish: {history[-1]}")


def test_health(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_upload_poll_download(tmp_path: Path) -> None:
    encoder = ScriptedEncoder(
        [ProgressEvent(10), ProgressEvent(40), ProgressEvent(75), SuccessEvent()],
        delay=0.02,
    )
    with make_client(tmp_path, encoder) as client:
        response = upload(client)
        assert response.status_code == 202
        body = response.json()
        job_id = body["jobId"]
        assert body["statusUrl"] == f"/api/status/{job_id}"
        assert body["downloadUrl"] == f"/api/download/{job_id}"

        history = wait_for_terminal(client, job_id)
        progress = [entry["progressPercent"] for entry in history]
        assert progress == sorted(progress)
        final = history[-1]
        assert final["status"] == "done"
        assert final["progressPercent"] == 100
        assert final["downloadUrl"] == f"/api/download/{job_id}"
        assert "errorMessage" not in final

        download = client.get(f"/api/download/{job_id}")
        assert download.status_code == 200
        assert download.content == FAKE_MP3
        assert download.headers["content-type"] == "audio/mpeg"
        assert f"audio-{job_id}.mp3" in download.headers["content-disposition"]


def test_status_before_processing_is_queued(tmp_path: Path) -> None:
    gate = threading.Event()
    # One worker held on the first job keeps the second one queued
    encoder = ScriptedEncoder([SuccessEvent()], gate=gate)
    with make_client(tmp_path, encoder) as client:
        upload(client)
        second = upload(client).json()["jobId"]

        status = client.get(f"/api/status/{second}").json()
        assert status["status"] == "queued"
        assert status["progressPercent"] == 0
        assert "downloadUrl" not in status
        gate.set()
        assert wait_for_terminal(client, second)[-1]["status"] == "done"


def test_disallowed_type_is_rejected(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        response = upload(client, b"hello", "text/plain", "notes.txt")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file type"
        assert len(client.app.state.store) == 0
        assert client.get("/api/status/00000000-0000-4000-8000-000000000000").status_code == 404
    assert list((tmp_path / "uploads").iterdir()) == []


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        response = client.post("/api/upload", files={"other": ("a.mp4", VIDEO, "video/mp4")})
        assert response.status_code == 400
        assert len(client.app.state.store) == 0


def test_oversized_upload_is_rejected_and_removed(tmp_path: Path) -> None:
    with make_client(tmp_path, max_file_bytes=100) as client:
        response = upload(client)
        assert response.status_code == 400
        assert "too large" in response.json()["detail"]
        assert len(client.app.state.store) == 0
    assert list((tmp_path / "uploads").iterdir()) == []


def test_empty_upload_is_rejected(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        response = upload(client, b"")
        assert response.status_code == 400
        assert len(client.app.state.store) == 0


def test_download_before_completion_is_not_ready(tmp_path: Path) -> None:
    gate = threading.Event()
    encoder = ScriptedEncoder([ProgressEvent(50), SuccessEvent()], gate=gate)
    with make_client(tmp_path, encoder) as client:
        job_id = upload(client).json()["jobId"]
        response = client.get(f"/api/download/{job_id}")
        assert response.status_code == 400
        assert response.json()["detail"] == "Output not ready"
        gate.set()
        wait_for_terminal(client, job_id)
        assert client.get(f"/api/download/{job_id}").status_code == 200


def test_failed_job_reports_error(tmp_path: Path) -> None:
    encoder = ScriptedEncoder([ProgressEvent(5), FailureEvent("Invalid data found when processing input")])
    with make_client(tmp_path, encoder) as client:
        job_id = upload(client).json()["jobId"]
        final = wait_for_terminal(client, job_id)[-1]
        assert final["status"] == "error"
        assert final["errorMessage"] == "Invalid data found when processing input"
        assert "downloadUrl" not in final
        assert client.get(f"/api/download/{job_id}").status_code == 400


def test_unknown_ids_are_not_found(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        assert client.get("/api/status/unknown").status_code == 404
        assert client.get("/api/download/unknown").status_code == 404


def test_job_expires_after_ttl(tmp_path: Path) -> None:
    with make_client(tmp_path, ttl_sec=0.2) as client:
        job_id = upload(client).json()["jobId"]
        assert wait_for_terminal(client, job_id)[-1]["status"] == "done"
        job = client.app.state.store.get(job_id)
        output_path = Path(job.output_path)
        input_path = Path(job.input_path)
        assert output_path.exists()

        time.sleep(0.5)

        assert client.get(f"/api/download/{job_id}").status_code == 404
        assert client.get(f"/api/status/{job_id}").status_code == 404
        assert not output_path.exists()
        assert not input_path.exists()


def test_shutdown_removes_job_files(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        job_id = upload(client).json()["jobId"]
        wait_for_terminal(client, job_id)
    assert list((tmp_path / "uploads").iterdir()) == []
    assert list((tmp_path / "outputs").iterdir()) == []


def test_index_page_is_served(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        page = client.get("/")
        assert page.status_code == 200
        assert "uploadForm" in page.text
        script = client.get("/app.js")
        assert script.status_code == 200
        assert "/api/upload" in script.text


def test_security_headers_are_set(tmp_path: Path) -> None:
    with make_client(tmp_path) as client:
        for path in ("/health", "/", "/api/status/unknown"):
            response = client.get(path)
            assert response.headers["x-content-type-options"] == "nosniff"
            assert response.headers["x-frame-options"] == "SAMEORIGIN"
            assert response.headers["referrer-policy"] == "no-referrer"
            assert "default-src 'self'" in response.headers["content-security-policy"]
