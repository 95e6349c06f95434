from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, Query, Response

from pulse.errors import AuthorizationError
from pulse.storage import FileStorage, get_storage

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("/{bucket}/{path:path}")
def read_signed_file(
    bucket: str,
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    storage: FileStorage = Depends(get_storage),
) -> Response:
    if not storage.verify(bucket, path, expires, signature):
        raise AuthorizationError("File link is invalid or has expired")
    data = storage.read(bucket, path)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": "private, max-age=0"})
