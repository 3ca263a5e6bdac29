# catalog_service/storage.py

import logging
import time
from typing import Optional
from urllib.parse import urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from starlette.concurrency import run_in_threadpool

from .config import ObjectStoreConfig

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPE = "image/jpeg"


def key_from_url(url: Optional[str]) -> Optional[str]:
    """Return the object key (last path segment) of a stored image URL."""
    if not url:
        return None
    path = urlsplit(url).path
    key = path.rstrip("/").rsplit("/", 1)[-1]
    return key or None


class ObjectStore:
    """
    Product images on an S3-compatible object store (MinIO, S3, R2...).

    Blocking boto3 calls are pushed to the thread pool so that several
    requests against the store can be awaited concurrently.
    """

    def __init__(self, config: ObjectStoreConfig, client=None):
        self.config = config
        self.bucket_name = config.bucket_name
        self.client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    def ensure_bucket(self) -> None:
        """Create the bucket if it is missing. Never raises."""
        try:
            try:
                self.client.head_bucket(Bucket=self.bucket_name)
                logger.info(
                    f"Product Service: Bucket '{self.bucket_name}' already exists."
                )
                return
            except ClientError as e:
                code = str(e.response.get("Error", {}).get("Code", ""))
                if code not in ("404", "NoSuchBucket", "NotFound"):
                    raise

            if self.config.region == "us-east-1":
                self.client.create_bucket(Bucket=self.bucket_name)
            else:
                self.client.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={
                        "LocationConstraint": self.config.region
                    },
                )
            logger.info(
                f"Product Service: Bucket '{self.bucket_name}' created in region '{self.config.region}'."
            )
        except Exception as e:
            logger.error(
                f"Product Service: Could not initialize bucket '{self.bucket_name}'. Error: {e}"
            )

    def build_object_url(self, key: str) -> str:
        return f"{self.config.endpoint_url}/{self.bucket_name}/{key}"

    async def upload_product_image(self, data: bytes, product_id: int) -> str:
        # TODO: derive the key suffix and content type from the uploaded file once
        # existing .jpg keys are migrated.
        key = f"product-{product_id}-{int(time.time() * 1000)}.jpg"
        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentLength=len(data),
            ContentType=IMAGE_CONTENT_TYPE,
        )
        logger.info(
            f"Product Service: Stored image for product {product_id} as '{key}' ({len(data)} bytes)."
        )
        return self.build_object_url(key)

    async def get_signed_url(self, key: Optional[str]) -> Optional[str]:
        """
        Presigned GET URL for ``key``, or None when there is nothing to sign
        or signing failed.
        """
        if not key:
            return None
        try:
            return await run_in_threadpool(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=self.config.signed_url_expiry_seconds,
            )
        except Exception as e:
            logger.error(
                f"Product Service: Could not generate signed URL for '{key}'. Error: {e}"
            )
            return None

    async def delete_file(self, key: str) -> None:
        try:
            await run_in_threadpool(
                self.client.delete_object, Bucket=self.bucket_name, Key=key
            )
            logger.info(f"Product Service: Deleted object '{key}'.")
        except Exception as e:
            logger.error(f"Product Service: Could not delete object '{key}'. Error: {e}")
            raise
