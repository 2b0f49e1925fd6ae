"""
Media storage for uploaded audio and images.
Files go to S3 when S3_BUCKET_NAME is configured, otherwise under UPLOAD_FOLDER.
"""
import logging
import os
import secrets
import time
from typing import Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = '/uploads/'

AUDIO_TYPES = (
    'audio/wav', 'audio/mp3', 'audio/mpeg', 'audio/mp4', 'audio/ogg',
    'audio/webm', 'audio/m4a', 'audio/x-m4a',
)
IMAGE_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/gif')
IMAGE_EXTENSIONS = ('.jpeg', '.jpg', '.png', '.gif')


class S3MediaStorage:
    def __init__(self, bucket_name: str, region: str):
        self.bucket_name = bucket_name
        self.region = region
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=os.environ.get('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.environ.get('AWS_SECRET_ACCESS_KEY'),
            region_name=region
        )
        logger.info("S3 client initialized for bucket: %s", bucket_name)

    @property
    def url_prefix(self) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/"

    def get_public_url(self, s3_key: str) -> str:
        return f"{self.url_prefix}{s3_key}"

    def upload(self, stream, s3_key: str, content_type: str) -> str:
        try:
            self.s3_client.upload_fileobj(
                stream,
                self.bucket_name,
                s3_key,
                ExtraArgs={'ContentType': content_type, 'CacheControl': 'max-age=31536000'}
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload %s to S3: %s", s3_key, e)
            raise StorageError("Failed to store uploaded file", e) from e
        logger.info("Uploaded %s to S3", s3_key)
        return self.get_public_url(s3_key)

    def delete(self, s3_key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to delete %s from S3: %s", s3_key, e)
            return False
        logger.info("Deleted %s from S3", s3_key)
        return True


_s3_storage: Optional[S3MediaStorage] = None


def get_s3_storage() -> Optional[S3MediaStorage]:
    """S3 backend when a bucket is configured, else None"""
    global _s3_storage
    bucket = current_app.config.get('S3_BUCKET_NAME')
    if not bucket:
        return None
    if _s3_storage is None or _s3_storage.bucket_name != bucket:
        _s3_storage = S3MediaStorage(bucket, current_app.config.get('AWS_DEFAULT_REGION', 'eu-central-1'))
    return _s3_storage


def _unique_name(prefix: str, original: str) -> str:
    ext = os.path.splitext(secure_filename(original or ''))[1].lower()
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}"


def check_upload_type(file, allowed_types: Iterable[str], allowed_extensions: Iterable[str] = None) -> None:
    if file.mimetype not in allowed_types:
        raise ValidationError(f"Unsupported file type: {file.mimetype}")
    if allowed_extensions is not None:
        ext = os.path.splitext(file.filename or '')[1].lower()
        if ext not in allowed_extensions:
            raise ValidationError(f"Unsupported file extension: {ext or 'none'}")


def save_upload(file, folder: str, prefix: str) -> str:
    """Store an uploaded file and return the URL clients fetch it from"""
    name = _unique_name(prefix, file.filename)
    s3 = get_s3_storage()
    if s3 is not None:
        return s3.upload(file.stream, f"uploads/{folder}/{name}", file.mimetype)

    directory = os.path.join(current_app.config['UPLOAD_FOLDER'], folder)
    os.makedirs(directory, exist_ok=True)
    try:
        file.save(os.path.join(directory, name))
    except OSError as e:
        logger.error("Failed to save upload %s: %s", name, e)
        raise StorageError("Failed to store uploaded file", e) from e
    return f"{LOCAL_URL_PREFIX}{folder}/{name}"


def delete_media(url: Optional[str]) -> bool:
    """Remove a stored file given the URL returned by ``save_upload``"""
    if not url:
        return False

    s3 = get_s3_storage()
    if s3 is not None and url.startswith(s3.url_prefix):
        return s3.delete(url[len(s3.url_prefix):])

    if url.startswith(LOCAL_URL_PREFIX):
        upload_root = os.path.realpath(current_app.config['UPLOAD_FOLDER'])
        path = os.path.realpath(os.path.join(upload_root, url[len(LOCAL_URL_PREFIX):]))
        if not path.startswith(upload_root + os.sep) or not os.path.exists(path):
            return False
        try:
            os.remove(path)
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)
            return False
        return True
    return False
