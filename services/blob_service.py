# services/blob_service.py

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Dict, Tuple

from models.task import Attachment
from services.exceptions import BlobUploadError
from utils.datetime_utils import now_iso

logger = logging.getLogger(__name__)


def decode_data_url(data: str) -> Tuple[str, bytes]:
    """'data:<mime>;base64,<payload>' -> (mime, bytes)"""
    if not data.startswith("data:") or "," not in data:
        raise BlobUploadError("Attachment payload is not a data URL")

    header, payload = data[5:].split(",", 1)
    mime = header.split(";")[0] or "application/octet-stream"
    try:
        if header.endswith(";base64"):
            return mime, base64.b64decode(payload, validate=True)
        return mime, payload.encode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise BlobUploadError(f"Attachment payload is not valid base64: {e}") from e


class BlobStore(ABC):
    """Object storage collaborator for attachments"""

    @abstractmethod
    async def upload(self, owner_id: str, attachment: Attachment) -> Attachment:
        """Store the inline payload; returns the attachment with `url` set and no `data`"""

    @abstractmethod
    async def delete(self, owner_id: str, attachment_id: str):
        """Remove a stored attachment"""


class InMemoryBlobStore(BlobStore):
    """Keeps payloads in a dict, for tests and local demos"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    async def upload(self, owner_id: str, attachment: Attachment) -> Attachment:
        mime, content = decode_data_url(attachment.data or "")
        path = f"{owner_id}/{attachment.id}"
        self.blobs[path] = content
        return replace(
            attachment,
            url=f"memory://{path}",
            data=None,
            type=attachment.type or mime,
            size=len(content),
            uploaded_at=attachment.uploaded_at or now_iso(),
            error=False,
        )

    async def delete(self, owner_id: str, attachment_id: str):
        self.blobs.pop(f"{owner_id}/{attachment_id}", None)


class LocalBlobStore(BlobStore):
    """Writes payloads under <root>/<owner id>/<attachment id>"""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    async def upload(self, owner_id: str, attachment: Attachment) -> Attachment:
        mime, content = decode_data_url(attachment.data or "")
        target = self.root / owner_id / attachment.id

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise BlobUploadError(f"Cannot store attachment {attachment.name}: {e}") from e

        logger.info(f"📎 Stored attachment {attachment.name} ({len(content)} bytes) for task {owner_id}")
        return replace(
            attachment,
            url=target.resolve().as_uri(),
            data=None,
            type=attachment.type or mime,
            size=len(content),
            uploaded_at=attachment.uploaded_at or now_iso(),
            error=False,
        )

    async def delete(self, owner_id: str, attachment_id: str):
        target = self.root / owner_id / attachment_id
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug(f"Attachment {attachment_id} of task {owner_id} already removed")
