import os
import uuid
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

import config
from auth import get_current_admin
from config import logger
from crud import ok

router = APIRouter(prefix="/api/upload", tags=["upload"])

IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}


def check_image(upload: UploadFile, content: bytes) -> None:
    if upload.content_type not in IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.")
    if len(content) > config.MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="File size too large. Maximum size is 5MB.")


def save_image(upload: UploadFile, content: bytes, request: Request) -> dict:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    filename = f"project-{uuid.uuid4().hex}{ext}"
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(config.UPLOAD_DIR, filename), "wb") as fh:
        fh.write(content)
    logger.info("Stored upload %s (%d bytes)", filename, len(content))
    return {
        "filename": filename,
        "originalName": upload.filename,
        "size": len(content),
        "url": f"{str(request.base_url).rstrip('/')}/uploads/{filename}",
    }


@router.post("/image")
async def upload_image(request: Request, image: UploadFile = File(None), _: dict = Depends(get_current_admin)):
    if image is None:
        raise HTTPException(status_code=400, detail="No image file provided")
    content = await image.read()
    check_image(image, content)
    return ok(save_image(image, content, request), "Image uploaded successfully")


@router.post("/images")
async def upload_images(request: Request, images: List[UploadFile] = File(None), _: dict = Depends(get_current_admin)):
    if not images:
        raise HTTPException(status_code=400, detail="No image files provided")
    if len(images) > config.MAX_IMAGES_PER_REQUEST:
        raise HTTPException(status_code=400, detail=f"Too many files. Maximum {config.MAX_IMAGES_PER_REQUEST} files allowed.")

    # validate the whole batch before writing anything
    contents = []
    for image in images:
        content = await image.read()
        check_image(image, content)
        contents.append(content)
    saved = [save_image(image, content, request) for image, content in zip(images, contents)]
    return ok(saved, f"{len(saved)} images uploaded successfully")


@router.delete("/image/{filename}")
def delete_image(filename: str, _: dict = Depends(get_current_admin)):
    root = os.path.realpath(config.UPLOAD_DIR)
    path = os.path.realpath(os.path.join(root, filename))
    if os.path.dirname(path) != root:
        raise HTTPException(status_code=400, detail="Invalid filename")
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="Image not found")
    os.remove(path)
    return ok(message="Image deleted successfully")
