"""Upload endpoint: receive a media file and start a conversion job."""

import os
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from audioextract.api.deps import get_artifacts, get_orchestrator, get_settings
from audioextract.jobs.errors import UploadRejectedError
from audioextract.jobs.facade import download_url, status_url

router = APIRouter()

_CHUNK_BYTES = 1024 * 1024  # 1 MB


async def save_upload(file: UploadFile, dest_path: str, max_bytes: int) -> int:
    """Stream an upload to dest_path. Returns bytes written.

    Removes the partial file and raises UploadRejectedError when the upload
    is empty or larger than max_bytes.
    """
    total = 0
    try:
        with open(dest_path, "wb") as dst:
            while True:
                chunk = await file.read(_CHUNK_BYTES)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise UploadRejectedError(f"File too large (max {max_bytes} bytes)")
                dst.write(chunk)
        if total == 0:
            raise UploadRejectedError("Uploaded file is empty")
    except BaseException:
        if os.path.exists(dest_path):
            os.remove(dest_path)
        raise
    return total


@router.post("/upload", status_code=202)
async def upload_media(
    file: Optional[UploadFile] = File(None),
    settings=Depends(get_settings),
    artifacts=Depends(get_artifacts),
    orchestrator=Depends(get_orchestrator),
):
    """Accept a video upload, persist it, and queue an MP3 conversion.

    Returns:
        {jobId, statusUrl, downloadUrl}
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    if file.content_type not in settings.allowed_mime_types:
        raise HTTPException(status_code=400, detail="Invalid file type")

    # The id is needed for the file names before the job is registered
    job_id = str(uuid.uuid4())
    input_path = artifacts.input_path_for(job_id, file.filename)
    try:
        await save_upload(file, input_path, settings.max_file_bytes)
    except UploadRejectedError as exc:
        raise HTTPException(status_code=400, detail=exc.reason)
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save upload: {exc}")

    job = orchestrator.create_job(
        input_path=input_path,
        output_path=artifacts.output_path_for(job_id),
        job_id=job_id,
    )

    return {
        "jobId": job.id,
        "statusUrl": status_url(job.id),
        "downloadUrl": download_url(job.id),
    }
