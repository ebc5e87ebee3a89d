"""
Upload router for listing media, identity documents and profile images
"""
import uuid
import logging
from typing import List
from fastapi import APIRouter, File, UploadFile, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import aiofiles

from auth import get_current_user
from config import UPLOAD_DIR
from crud.user import UserRepository
from database import get_db
from database_models import User
from utils.security_utils import (
    UploadCategory,
    PROPERTY_MEDIA,
    ID_DOCUMENT,
    PROFILE_IMAGE,
    validate_uploaded_file,
)

logger = logging.getLogger(__name__)

upload_router = APIRouter(prefix="/api/upload", tags=["upload"])

MAX_MEDIA_FILES = 10


async def write_upload(file: UploadFile, extension: str, content: bytes, category: UploadCategory) -> dict:
    """
    Write already validated content under UPLOAD_DIR/<category.subdir>/.

    The stored name is generated; only the safe extension of the client's
    name is kept.
    """
    target_dir = UPLOAD_DIR / category.subdir
    target_dir.mkdir(parents=True, exist_ok=True)

    stored_name = f"{category.field}-{uuid.uuid4().hex}{extension}"
    async with aiofiles.open(target_dir / stored_name, "wb") as f:
        await f.write(content)

    logger.info(f"Stored {category.name} upload {stored_name} ({len(content)} bytes)")
    return {
        "filename": stored_name,
        "originalName": file.filename,
        "url": f"/uploads/{category.subdir}/{stored_name}",
        "mimeType": file.content_type,
        "size": len(content),
    }


async def store_upload(file: UploadFile, category: UploadCategory) -> dict:
    extension, content = await validate_uploaded_file(file, category)
    return await write_upload(file, extension, content, category)


@upload_router.post("/property-media")
async def upload_property_media(
    media: List[UploadFile] = File(...),
    user: User = Depends(get_current_user),
):
    """
    Listing photos and videos, up to 10 per request.

    Every file is checked before any is written, so a rejected batch
    leaves nothing on disk.
    """
    if not media:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(media) > MAX_MEDIA_FILES:
        raise HTTPException(status_code=400, detail=f"At most {MAX_MEDIA_FILES} files per upload")

    validated = []
    for item in media:
        extension, content = await validate_uploaded_file(item, PROPERTY_MEDIA)
        validated.append((item, extension, content))

    files = []
    for item, extension, content in validated:
        stored = await write_upload(item, extension, content, PROPERTY_MEDIA)
        stored["type"] = "image" if stored.pop("mimeType").lower().startswith("image/") else "video"
        files.append(stored)

    return {"message": "Files uploaded successfully", "files": files}


@upload_router.post("/id-proof")
async def upload_id_proof(
    document: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Identity document; required before expressing interest in a listing"""
    stored = await store_upload(document, ID_DOCUMENT)
    await UserRepository(db).update_user(user, {"id_proof_document": stored["url"]})
    await db.commit()
    return {"message": "ID proof document uploaded successfully", "documentUrl": stored["url"]}


@upload_router.post("/profile-image")
async def upload_profile_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stored = await store_upload(image, PROFILE_IMAGE)
    await UserRepository(db).update_user(user, {"profile_image": stored["url"]})
    await db.commit()
    return {"message": "Profile image uploaded successfully", "imageUrl": stored["url"]}
