"""
Opérations fichier utilisées par `read <path>` et les routes /api/file/*.

Async I/O uniquement (aiofiles). Toute erreur OS devient une
`FileOperationError` portant le message système d'origine.
"""
import logging
import os

import aiofiles

from ..core.exceptions import FileOperationError

logger = logging.getLogger(__name__)


def _describe(e: Exception, path: str) -> str:
    if isinstance(e, OSError) and e.strerror:
        return f"{e.strerror}: {path}"
    return str(e) or type(e).__name__


async def read_text_file(path: str) -> str:
    """
    Lit un fichier texte UTF-8.

    Raises:
        FileOperationError: fichier absent, illisible ou non UTF-8
    """
    if not path:
        raise FileOperationError("No file path given", operation="read")

    resolved = os.path.expanduser(path)
    try:
        async with aiofiles.open(resolved, "r", encoding="utf-8") as f:
            return await f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.info("Lecture impossible %s: %s", resolved, e)
        raise FileOperationError(_describe(e, path), path=path, operation="read") from e


async def write_text_file(path: str, content: str) -> int:
    """
    Écrit (écrase) un fichier texte UTF-8.

    Returns:
        Nombre de caractères écrits

    Raises:
        FileOperationError: chemin invalide ou non inscriptible
    """
    if not path:
        raise FileOperationError("No file path given", operation="write")

    resolved = os.path.expanduser(path)
    try:
        async with aiofiles.open(resolved, "w", encoding="utf-8") as f:
            return await f.write(content or "")
    except OSError as e:
        logger.info("Écriture impossible %s: %s", resolved, e)
        raise FileOperationError(_describe(e, path), path=path, operation="write") from e
