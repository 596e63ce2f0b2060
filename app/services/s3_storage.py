from __future__ import annotations

import re
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from app.core.config import settings


def _safe_file_name(file_name: str) -> str:
    raw = str(file_name or "").strip() or "file.bin"
    return re.sub(r"[^A-Za-z0-9._-]+", "_", raw)


def application_field_prefix(application_id: str, field_key: str) -> str:
    return f"applications/{application_id}/{field_key}/"


def build_field_object_key(application_id: str, field_key: str, request_key: str, index: int, file_name: str) -> str:
    # Same request key, index and name always map to the same object, so a retried upload overwrites instead of duplicating.
    safe_name = _safe_file_name(file_name)
    return f"{application_field_prefix(application_id, field_key)}{request_key[:16]}-{int(index)}-{safe_name}"


class S3Storage:
    def __init__(self):
        self.bucket = settings.S3_BUCKET
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
            use_ssl=settings.S3_USE_SSL,
        )
        self._bucket_checked = False

    def ensure_bucket(self) -> None:
        if self._bucket_checked:
            return
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code not in {"404", "NoSuchBucket", "NotFound"}:
                raise
            kwargs: dict = {"Bucket": self.bucket}
            if settings.S3_REGION and settings.S3_REGION != "us-east-1":
                kwargs["CreateBucketConfiguration"] = {"LocationConstraint": settings.S3_REGION}
            try:
                self.client.create_bucket(**kwargs)
            except ClientError as create_exc:
                create_code = str(create_exc.response.get("Error", {}).get("Code", ""))
                if create_code not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                    raise
        self._bucket_checked = True

    def create_presigned_put_url(self, key: str, mime_type: str, expires_sec: int | None = None) -> str:
        self.ensure_bucket()
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": mime_type},
            ExpiresIn=int(expires_sec or settings.UPLOAD_URL_TTL_SECONDS),
            HttpMethod="PUT",
        )

    def create_presigned_get_url(self, key: str, expires_sec: int | None = None) -> str:
        self.ensure_bucket()
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=int(expires_sec or settings.FILE_URL_TTL_SECONDS),
        )

    def head_object(self, key: str) -> dict:
        self.ensure_bucket()
        return self.client.head_object(Bucket=self.bucket, Key=key)


@lru_cache(maxsize=1)
def get_s3_storage() -> S3Storage:
    return S3Storage()
