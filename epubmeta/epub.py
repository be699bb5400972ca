from __future__ import annotations

import logging
import zipfile
import zlib
from pathlib import Path
from typing import Union

from .archive import EpubArchive, EpubStructureError
from .metadata import read_metadata
from .models import Metadata
from .namespaces import read_xml
from .toc import read_toc

logger = logging.getLogger("epubmeta.epub")

CONTAINER_PATH = "META-INF/container.xml"
EPUB_MIMETYPE = "application/epub+zip"
PACKAGE_MEDIA_TYPE = "application/oebps-package+xml"


class PackagePointerError(EpubStructureError, ValueError):
    pass


def check_mimetype(archive: EpubArchive) -> bool:
    """Advisory check of the ``mimetype`` entry; problems are only logged."""
    try:
        mimetype = archive.read_text("mimetype")
    except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as exc:
        logger.warning("%s: cannot read mimetype: %s", archive.path, exc)
        return False
    if mimetype != EPUB_MIMETYPE:
        logger.warning("%s: mimetype is %r, not %s", archive.path, mimetype[:64], EPUB_MIMETYPE)
        return False
    return True


async def find_package_path(archive: EpubArchive) -> str:
    q = await read_xml(archive, CONTAINER_PATH)
    full_path = q.attr(f'rootfile[media-type="{PACKAGE_MEDIA_TYPE}"]', "full-path")
    if not full_path:
        raise PackagePointerError(f"could not find oebps content pointer in {CONTAINER_PATH}")
    return full_path


async def read_epub(path: Union[str, Path]) -> Metadata:
    """Read metadata and table of contents from the EPUB at ``path``.

    The returned record keeps the archive open so chapters can be read later;
    close it (or use it as a context manager) when done.
    """

    archive = EpubArchive(path)
    try:
        check_mimetype(archive)
        package_path = await find_package_path(archive)
        meta = await read_metadata(archive, package_path)
        if meta.toc_pointer is None:
            logger.warning("%s: no nav document or NCX in manifest; table of contents is empty", archive.path)
        else:
            meta.toc = await read_toc(archive, meta.toc_pointer)
    except BaseException:
        archive.close()
        raise
    return meta
