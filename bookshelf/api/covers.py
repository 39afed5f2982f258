import logging

from fastapi import APIRouter, Depends, File, UploadFile

from ..covers import CoverStorage
from .responses import ApiError, envelope, get_cover_storage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/covers", tags=["covers"])


@router.post("", status_code=201)
async def upload_cover(
    file: UploadFile = File(...),
    covers: CoverStorage = Depends(get_cover_storage),
):
    # one byte past the limit is enough to reject an oversized upload
    data = await file.read(covers.max_bytes + 1)
    try:
        url = covers.save(data, file.filename, file.content_type)
    except ValueError as exc:
        raise ApiError(400, "Invalid cover image", str(exc))
    except Exception as exc:
        logger.error("Error uploading cover %s: %s", file.filename, exc)
        raise ApiError(500, "Failed to upload cover", str(exc))
    return envelope({"url": url}, message="Cover uploaded successfully", status_code=201)
