"""
Image storage for equipment photos: local directory, S3-compatible bucket, or in-memory.
"""

from __future__ import annotations

import logging
import os
import secrets
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.config import Config

from services.errors import InventoryError


MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_UPLOAD_DIR = BASE_DIR / "static" / "uploads"

STORAGE_LOGGER = logging.getLogger("agri_inventory.storage")


class ImageStore(Protocol):
    """What the upload endpoint needs from a storage backend."""

    def put(self, path: str, data: bytes, content_type: str) -> str:
        ...


def validate_image(content_type: Optional[str], size: int) -> None:
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise InventoryError("Invalid file type. Only images (JPEG, PNG, WebP, GIF) are allowed.")
    if size > MAX_IMAGE_BYTES:
        raise InventoryError("File size exceeds 5MB limit.")


def build_object_path(filename: Optional[str], content_type: str) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if not ext or not ext.isalnum():
        ext = _EXTENSIONS.get(content_type.lower(), "bin")
    return f"equipment/{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"


@dataclass
class InMemoryImageStore:
    """Test double for image uploads."""

    base_url: str = "https://example.test/uploads"
    stored_objects: dict = field(default_factory=dict)

    def put(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = (content_type, bytes(data))
        return f"{self.base_url}/{path}"


@dataclass
class LocalImageStore:
    """Writes into a directory the app serves under ``/uploads``."""

    root: Path
    public_base_url: str = ""

    def put(self, path: str, data: bytes, content_type: str) -> str:
        target = self.root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as output:
            output.write(data)
        return f"{self.public_base_url.rstrip('/')}/uploads/{path}"


@dataclass
class S3ImageStore:
    """S3-compatible bucket; objects are written public-read."""

    bucket: str
    region: Optional[str] = None
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def put(self, path: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
        return f"{self._public_base().rstrip('/')}/{path}"

    def _public_base(self) -> str:
        if self.public_base_url:
            return self.public_base_url
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com"


def local_upload_dir() -> Path:
    raw = (os.environ.get("IMAGE_UPLOAD_DIR") or "").strip()
    return Path(raw) if raw else DEFAULT_UPLOAD_DIR


def _build_store_from_env() -> ImageStore:
    backend = (os.environ.get("IMAGE_STORE_BACKEND") or "local").strip().lower()
    if backend == "memory":
        return InMemoryImageStore()
    if backend == "s3":
        bucket = (os.environ.get("S3_BUCKET") or "").strip()
        if not bucket:
            raise RuntimeError("Missing required environment variable: S3_BUCKET")
        return S3ImageStore(
            bucket=bucket,
            region=os.environ.get("S3_REGION"),
            endpoint=os.environ.get("S3_ENDPOINT"),
            public_base_url=os.environ.get("S3_PUBLIC_BASE_URL"),
            access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
        )
    if backend != "local":
        raise RuntimeError(f"Unknown IMAGE_STORE_BACKEND: {backend}")
    return LocalImageStore(root=local_upload_dir(), public_base_url=os.environ.get("PUBLIC_BASE_URL") or "")


_STORE_LOCK = threading.Lock()
_STORE: Optional[ImageStore] = None


def get_image_store() -> ImageStore:
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = _build_store_from_env()
            STORAGE_LOGGER.info("Image store ready backend=%s", type(_STORE).__name__)
        return _STORE


def set_image_store(store: Optional[ImageStore]) -> None:
    """Replace the active store; ``None`` rebuilds it from the environment on next use."""
    global _STORE
    with _STORE_LOCK:
        _STORE = store


def uses_local_store() -> bool:
    return (os.environ.get("IMAGE_STORE_BACKEND") or "local").strip().lower() == "local"
