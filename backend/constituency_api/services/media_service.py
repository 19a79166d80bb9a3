"""
Image upload to the hosted media API (Cloudinary unsigned upload preset).
"""

import logging
from typing import Optional

import requests

from ..config import get_config
from ..errors import MediaUploadError, ValidationError

logger = logging.getLogger(__name__)

CLOUD_NAME = "djisnlxc4"

FOLDERS = {
    "profile_pictures": "profile_pictures",
    "projects": "projects",
    "concerns": "concerns",
    "updates": "updates",
}


def is_valid_media_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return "cloudinary.com" in url and CLOUD_NAME in url


def upload_image(content: bytes, filename: Optional[str] = None, folder: Optional[str] = None,
                 content_type: str = "image/jpeg") -> str:
    """POST the file as multipart form data and return the hosted secure_url."""
    if not content:
        raise ValidationError("No image provided")
    if folder is not None and folder not in FOLDERS:
        raise ValidationError(f"Unknown upload folder: {folder}")

    config = get_config()
    form_data = {"upload_preset": config.cloudinary_upload_preset}
    if folder:
        form_data["folder"] = FOLDERS[folder]
    files = {"file": (filename or "upload.jpg", content, content_type)}

    try:
        r = requests.post(config.cloudinary_url, data=form_data, files=files,
                          headers={"Accept": "application/json"}, timeout=config.upload_timeout_seconds)
    except requests.RequestException as e:
        logger.error(f"Media upload failed ({filename}, folder={folder}): {e}")
        raise MediaUploadError("Upload failed: media service unreachable") from e

    if not r.ok:
        try:
            message = r.json().get("error", {}).get("message", "Unknown error")
        except ValueError:
            message = "Unknown error"
        logger.error(f"Media upload rejected with status {r.status_code}: {message}")
        raise MediaUploadError(f"Upload failed with status {r.status_code}: {message}")

    try:
        secure_url = r.json().get("secure_url")
    except ValueError:
        secure_url = None
    if not secure_url:
        raise MediaUploadError("No secure URL returned from the media service")

    logger.info(f"Uploaded {filename or 'upload.jpg'} to {folder or 'root'}")
    return secure_url
