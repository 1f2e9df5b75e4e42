# reviewsync Upload Collaborator
# Attachment uploads to an external blob host; failures never block a save

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Uploader(Protocol):
    """Uploads a file and returns an externally addressable URL."""

    async def upload(self, path: Path) -> str:
        ...


async def upload_attachments(uploader: Uploader, paths: Sequence[Path]) -> list[str]:
    """
    Upload files concurrently and collect their URLs.

    Failed uploads are logged and left out; the caller submits the record
    with whatever attachments succeeded.

    Args:
        uploader: Upload collaborator.
        paths: Files to upload.

    Returns:
        URLs of the successful uploads, in input order.
    """
    if not paths:
        return []

    results = await asyncio.gather(*(uploader.upload(Path(p)) for p in paths), return_exceptions=True)

    urls: list[str] = []
    for path, result in zip(paths, results):
        if isinstance(result, Exception):
            logger.warning("Upload of %s failed, omitting attachment: %s", path, result)
            continue
        if isinstance(result, BaseException):
            raise result
        if not result:
            logger.warning("Upload of %s returned no URL, omitting attachment", path)
            continue
        urls.append(result)
    return urls
