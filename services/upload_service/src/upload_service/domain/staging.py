from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
import structlog

logger = structlog.get_logger(__name__)

STAGING_PREFIX = "upload_service_"


@asynccontextmanager
async def staged_file(content: bytes, suffix: str = "") -> AsyncIterator[Path]:
    """Materialize bytes as a temporary local file for the duration of the block.

    The file is removed on every exit path.
    """
    fd, name = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=suffix)
    os.close(fd)
    path = Path(name)
    try:
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)
        logger.debug("staging.file.created", path=name, size_bytes=len(content))
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("staging.file.removed", path=name)
