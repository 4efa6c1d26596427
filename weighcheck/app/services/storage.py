"""
Evidence storage over a Cloudinary-compatible HTTP API.

Uploads use an unsigned preset; admin deletion uses the API key and
secret. Failures surface as ``UploadError`` carrying the slot so the same
processed bytes can be retried.
"""

import logging
import re
from typing import Dict, List, Optional

import httpx

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import UploadError

logger = logging.getLogger("weighcheck.storage")

DELETE_BATCH_SIZE = 100

VERSION_SEGMENT = re.compile(r"^v\d+$")
TRANSFORMATION_SEGMENT = re.compile(r"^[a-z]{1,3}_[^/]+$")


class EvidenceUploader:
    """
    Usage:
        uploader = EvidenceUploader()
        url = await uploader.upload(jpeg_bytes, "JT123_foto1.jpg", slot=1)
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
        cloud_name: Optional[str] = None,
        upload_preset: Optional[str] = None,
        folder: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.base_url = (base_url or settings.storage_base_url).rstrip("/")
        self.cloud_name = cloud_name or settings.storage_cloud_name
        self.upload_preset = upload_preset or settings.storage_upload_preset
        self.folder = folder or settings.storage_folder
        self.api_key = api_key if api_key is not None else settings.storage_api_key
        self.api_secret = api_secret if api_secret is not None else settings.storage_api_secret
        self.timeout = timeout or settings.storage_timeout_seconds

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout)

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/v1_1/{self.cloud_name}/image/upload"

    @property
    def delete_url(self) -> str:
        return f"{self.base_url}/v1_1/{self.cloud_name}/resources/image/upload"

    async def upload(self, data: bytes, name: str, slot: int) -> str:
        """
        Upload one evidence image.

        Returns:
            The secure URL of the stored object

        Raises:
            UploadError: network failure, non-2xx response or missing URL
        """
        public_id = name.rsplit(".", 1)[0]
        form = {
            "upload_preset": self.upload_preset,
            "folder": self.folder,
            "public_id": public_id,
        }
        files = {"file": (name, data, "image/jpeg")}

        try:
            async with self._client() as client:
                response = await client.post(self.upload_url, data=form, files=files)
            response.raise_for_status()
            url = response.json().get("secure_url")
        except httpx.HTTPStatusError as e:
            logger.error(
                "Evidence upload rejected",
                extra={"slot": slot, "object_name": name, "status_code": e.response.status_code},
            )
            raise UploadError(slot, f"storage responded with HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Evidence upload failed", extra={"slot": slot, "object_name": name, "error": str(e)})
            raise UploadError(slot, str(e) or type(e).__name__)

        if not url:
            raise UploadError(slot, "storage response has no secure_url")

        logger.info("Evidence uploaded", extra={"slot": slot, "object_name": name})
        return url

    async def delete(self, public_ids: List[str]) -> Dict[str, List[str]]:
        """
        Delete stored objects in batches of 100.

        Returns:
            {"deleted": [...], "failed": [...]} by public id
        """
        deleted: List[str] = []
        failed: List[str] = []

        async with self._client() as client:
            for start in range(0, len(public_ids), DELETE_BATCH_SIZE):
                batch = public_ids[start:start + DELETE_BATCH_SIZE]
                try:
                    response = await client.request(
                        "DELETE",
                        self.delete_url,
                        params=[("public_ids[]", public_id) for public_id in batch],
                        auth=(self.api_key, self.api_secret),
                    )
                    response.raise_for_status()
                    statuses = response.json().get("deleted", {})
                except (httpx.HTTPError, ValueError) as e:
                    logger.error("Evidence batch delete failed", extra={"batch_size": len(batch), "error": str(e)})
                    failed.extend(batch)
                    continue

                for public_id in batch:
                    if statuses.get(public_id) == "deleted":
                        deleted.append(public_id)
                    else:
                        failed.append(public_id)

        return {"deleted": deleted, "failed": failed}

    def extract_public_id(self, url: str) -> Optional[str]:
        """
        Public id (``folder/name``) of a stored object from its delivery URL.

        The id is the path after the version segment (``v1712345678``), so
        objects keep their own folder even after the configured one changes.
        Without a version segment, leading transformation segments are skipped.
        """
        if not url or "/upload/" not in url:
            return None

        path = url.split("/upload/", 1)[1].split("?", 1)[0]
        parts = [p for p in path.split("/") if p]
        if not parts:
            return None

        versions = [i for i, part in enumerate(parts[:-1]) if VERSION_SEGMENT.match(part)]
        if versions:
            parts = parts[versions[-1] + 1:]
        else:
            while len(parts) > 1 and TRANSFORMATION_SEGMENT.match(parts[0]):
                parts = parts[1:]

        filename = parts[-1]
        stem = filename.rsplit(".", 1)[0] if "." in filename else filename
        return "/".join(parts[:-1] + [stem])
