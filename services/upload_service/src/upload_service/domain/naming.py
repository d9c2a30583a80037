from __future__ import annotations

import re
import secrets
import string
import time
import unicodedata
from pathlib import PurePosixPath

from upload_service.domain.models import NamingStrategy

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_\-/]")
_SLUG_STRIP = re.compile(r"[^a-z0-9\s_-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")
_ALPHABET = string.ascii_letters + string.digits


def random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    normalized = _SLUG_STRIP.sub("", normalized.lower())
    return _SLUG_SEPARATORS.sub("-", normalized).strip("-")


def sanitize_folder(folder: str | None) -> str:
    """Reduce a caller-supplied folder to a relative path of safe segments.

    Backslashes count as separators; ``.``, ``..`` and empty segments are
    dropped; any character outside ``[A-Za-z0-9_-]`` becomes ``_``.
    """
    if not folder:
        return ""
    segments = []
    for segment in folder.replace("\\", "/").split("/"):
        if segment in ("", ".", ".."):
            continue
        segments.append(_UNSAFE_PATH_CHARS.sub("_", segment))
    return "/".join(segments)


def build_destination(base_path: str, folder: str | None) -> str:
    base = "/".join(p for p in base_path.replace("\\", "/").split("/") if p)
    safe = sanitize_folder(folder)
    if not safe:
        return base
    return f"{base}/{safe}" if base else safe


def generate_file_name(
    strategy: NamingStrategy,
    original_name: str,
    extension: str,
    length: int = 40,
) -> str:
    if strategy is NamingStrategy.ORIGINAL:
        stem = slugify(PurePosixPath(original_name.replace("\\", "/")).stem)
        # Non-latin names can slug to nothing.
        if not stem:
            stem = random_string(length)
        return f"{stem}.{extension}"
    if strategy is NamingStrategy.TIMESTAMP:
        return f"{int(time.time())}_{random_string(10)}.{extension}"
    return f"{random_string(length)}.{extension}"
