"""Property image storage in S3 and upload validation"""
import logging
import os

import boto3

from app_errors import BadRequestError

logger = logging.getLogger(__name__)


class ImageStore:
    """Puts and deletes image objects under <public folder>/<property id>/<key>."""

    def __init__(self, bucket: str, public_folder: str, client=None, region: str = None) -> None:
        self.bucket = bucket
        self.public_folder = public_folder
        self.client = client or boto3.client("s3", region_name=region)

    def object_key(self, key: str, property_id: int) -> str:
        return f"{self.public_folder}/{property_id}/{key}"

    def upload(self, key: str, body: bytes, property_id: int, content_type: str = None) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": self.object_key(key, property_id),
            "Body": body,
        }
        if content_type:
            params["ContentType"] = content_type
        self.client.put_object(**params)
        logger.info("Uploaded image %s", params["Key"])

    def delete(self, key: str, property_id: int) -> None:
        object_key = self.object_key(key, property_id)
        self.client.delete_object(Bucket=self.bucket, Key=object_key)
        logger.info("Deleted image %s", object_key)


def validate_image(filename: str, content_type: str, size: int, config) -> None:
    """Reject files that are not png/jpeg images or exceed the size limit."""
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in config.ALLOWED_IMAGE_EXTENSIONS:
        allowed = ", ".join(sorted(config.ALLOWED_IMAGE_EXTENSIONS))
        raise BadRequestError(
            f"{filename} is not an accepted image file extension, please use: {allowed}"
        )
    if content_type not in config.ALLOWED_IMAGE_TYPES:
        raise BadRequestError(f"{content_type} is not an accepted image type")
    if size > config.MAX_UPLOAD_SIZE:
        raise BadRequestError(
            f"File size limit exceeded {config.MAX_UPLOAD_SIZE // (1024 * 1024)}mb"
        )
