"""Route for storing chat media uploads."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ..schemas.chat import UploadResponse
from ..services.uploads import UploadError, UploadStore, UploadTooLarge

router = APIRouter(prefix="/api", tags=["uploads"])


def get_upload_store(request: Request) -> UploadStore:
    store = getattr(request.app.state, "upload_store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Upload store unavailable")
    return store


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(default=None),
    store: UploadStore = Depends(get_upload_store),
) -> UploadResponse | JSONResponse:
    if file is None:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    try:
        stored = await store.save(file)
    except UploadTooLarge as exc:
        return JSONResponse(status_code=413, content={"error": str(exc)})
    except UploadError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    return UploadResponse(
        url=stored.url,
        type=stored.mime_type,
        originalName=stored.original_name,
    )


__all__ = ["get_upload_store", "router"]
