"""Job status polling and MP3 download."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from audioextract.api.deps import get_facade
from audioextract.jobs.errors import JobNotFoundError, JobNotReadyError

router = APIRouter()


@router.get("/status/{job_id}")
async def get_job_status(job_id: str, facade=Depends(get_facade)):
    """Return {id, status, progressPercent, downloadUrl?, errorMessage?}."""
    try:
        view = facade.get_status(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")

    response = {
        "id": view.id,
        "status": view.status.value,
        "progressPercent": view.progress_percent,
    }
    if view.download_url:
        response["downloadUrl"] = view.download_url
    if view.error_message:
        response["errorMessage"] = view.error_message
    return response


@router.get("/download/{job_id}")
async def download_job_output(job_id: str, facade=Depends(get_facade)):
    """Stream the finished MP3."""
    try:
        artifact = facade.fetch_artifact(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobNotReadyError as exc:
        raise HTTPException(status_code=400, detail=exc.reason)

    return FileResponse(artifact.path, media_type=artifact.media_type, filename=artifact.filename)
