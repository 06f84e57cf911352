"""
S3 Storage Service

Provides the object operations the species sync and the debug endpoints
need: existence checks, copy, delete and prefix listings.
Configuration via environment variables:
- AWS_REGION (default: us-east-1)
- AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY (optional, otherwise the
  default boto3 credential chain is used)
- S3_IMAGE_PREFIX (default: images2)
"""

import logging
import os
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Configuration
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")

IMAGE_PREFIX = os.getenv("S3_IMAGE_PREFIX", "images2")

# Error codes S3 uses for a missing object on HEAD/GET
NOT_FOUND_CODES = {"404", "NotFound", "NoSuchKey"}


def get_s3_client():
    """Create and return an S3 client using boto3."""
    kwargs = {
        "region_name": AWS_REGION,
        "config": Config(signature_version="s3v4"),
    }
    if AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY:
        kwargs["aws_access_key_id"] = AWS_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = AWS_SECRET_ACCESS_KEY
    else:
        logger.info("AWS access keys not set, using default credential chain")

    return boto3.client("s3", **kwargs)


def is_not_found(error: ClientError) -> bool:
    """True if a ClientError means the object does not exist."""
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class S3Storage:
    """Thin wrapper around a boto3 S3 client, one instance per process."""

    def __init__(self, client):
        self.client = client

    def get_object_metadata(self, bucket: str, key: str) -> Optional[dict]:
        """
        Get metadata for an object.

        Returns:
            Dict with size, etag, last_modified, or None if not found

        Raises:
            ClientError: For any failure other than a missing object
        """
        try:
            response = self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise
        return {
            "size": response.get("ContentLength"),
            "etag": response.get("ETag"),
            "last_modified": response.get("LastModified"),
        }

    def copy_object(self, bucket: str, source_key: str, destination_key: str) -> Optional[str]:
        """
        Copy an object within a bucket.

        Returns:
            ETag of the new object
        """
        response = self.client.copy_object(
            Bucket=bucket,
            CopySource={"Bucket": bucket, "Key": source_key},
            Key=destination_key,
        )
        return response.get("CopyObjectResult", {}).get("ETag")

    def delete_object(self, bucket: str, key: str) -> Optional[str]:
        """
        Delete an object.

        Returns:
            VersionId of the delete marker, when the bucket is versioned
        """
        response = self.client.delete_object(Bucket=bucket, Key=key)
        return response.get("VersionId")

    def list_folder(self, bucket: str, prefix: str) -> dict:
        """
        List one level of a "folder" using the / delimiter.

        Args:
            bucket: Bucket name
            prefix: Folder prefix, with or without trailing slash

        Returns:
            Dict with folders (sub-folder names), files (key, size,
            lastModified) and isTruncated
        """
        folder = prefix.rstrip("/") + "/" if prefix else ""
        response = self.client.list_objects_v2(
            Bucket=bucket,
            Prefix=folder,
            Delimiter="/",
        )

        folders = [
            p["Prefix"][len(folder):].rstrip("/")
            for p in response.get("CommonPrefixes", [])
        ]
        files = [
            {
                "key": obj["Key"],
                "size": obj.get("Size", 0),
                "lastModified": obj["LastModified"].isoformat() if obj.get("LastModified") else None,
            }
            for obj in response.get("Contents", [])
        ]

        return {
            "folders": folders,
            "files": files,
            "isTruncated": response.get("IsTruncated", False),
        }

    def sample_objects(self, bucket: str, max_keys: int = 5) -> dict:
        """
        List the first few objects of a bucket, used as an access check.

        Returns:
            Dict with totalObjects (count returned) and sampleObjects
        """
        response = self.client.list_objects_v2(Bucket=bucket, MaxKeys=max_keys)
        objects = [
            {
                "key": obj["Key"],
                "size": obj.get("Size", 0),
                "lastModified": obj["LastModified"].isoformat() if obj.get("LastModified") else None,
            }
            for obj in response.get("Contents", [])
        ]
        return {
            "totalObjects": response.get("KeyCount", len(objects)),
            "sampleObjects": objects,
        }
