from __future__ import annotations

from typing import Optional

from google.api_core import exceptions as gexc
from google.cloud import storage

from ...errors import ForbiddenError, InternalError, NotFoundError, ServiceUnavailableError
from utils import logger


def _parse_gcs_path(path: str, default_bucket: str):
    if path.startswith("gs://"):
        bucket, _, blob = path[5:].partition("/")
        return bucket, blob
    return default_bucket, path


class GcsStore:
    """Object-storage get/put keyed by bucket + file name."""

    def __init__(self, input_bucket: str, output_bucket: str, client: Optional[storage.Client] = None):
        self.input_bucket = input_bucket
        self.output_bucket = output_bucket
        self._client = client

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def download(self, file_name: str, bucket: Optional[str] = None) -> bytes:
        bucket_name, blob_name = _parse_gcs_path(file_name, bucket or self.input_bucket)
        try:
            data = self.client.bucket(bucket_name).blob(blob_name).download_as_bytes()
        except gexc.NotFound as e:
            raise NotFoundError(f"File '{blob_name}' not found in bucket '{bucket_name}'") from e
        except gexc.Forbidden as e:
            raise ForbiddenError(f"Access denied to gs://{bucket_name}/{blob_name}") from e
        except (gexc.TooManyRequests, gexc.ServiceUnavailable) as e:
            raise ServiceUnavailableError(f"Storage unavailable: {e}") from e
        except gexc.GoogleAPICallError as e:
            raise InternalError(f"Failed to download gs://{bucket_name}/{blob_name}: {e}") from e
        logger.info(f"Downloaded gs://{bucket_name}/{blob_name} ({len(data)} bytes)")
        return data

    def upload(self, data: bytes, file_name: str, content_type: str, bucket: Optional[str] = None) -> str:
        """Upload and return the object's public URL."""
        bucket_name = bucket or self.output_bucket
        blob = self.client.bucket(bucket_name).blob(file_name)
        try:
            blob.upload_from_string(data, content_type=content_type)
        except gexc.Forbidden as e:
            raise ForbiddenError(f"Access denied writing gs://{bucket_name}/{file_name}") from e
        except (gexc.TooManyRequests, gexc.ServiceUnavailable) as e:
            raise ServiceUnavailableError(f"Storage unavailable: {e}") from e
        except gexc.GoogleAPICallError as e:
            raise InternalError(f"Failed to upload gs://{bucket_name}/{file_name}: {e}") from e
        logger.debug(f"Uploaded gs://{bucket_name}/{file_name}")
        return blob.public_url
