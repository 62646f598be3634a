import mimetypes
from fastapi import APIRouter, Request, Response

from clinic_api.core.errors import Forbidden, NotFound
from clinic_api.utils.io_helpers import AuthHelper

router = APIRouter()

@router.get("/files/{token}")
async def serve_signed_file(token: str, request: Request):
    """Serve a locally stored file behind a signed, expiring link"""
    key = AuthHelper.verify_download_token(token, request.app.state.settings)
    if key is None:
        raise Forbidden("Download link is invalid or has expired")

    content = await request.app.state.storage.download_file(key)
    if content is None:
        raise NotFound("File not found")

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
