"""
Routes API fichier: lecture/écriture directes.
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.exceptions import FileOperationError
from ...services.file_ops import read_text_file, write_text_file

router = APIRouter()


class FileReadRequest(BaseModel):
    path: str = Field(..., description="Chemin du fichier à lire")


class FileWriteRequest(BaseModel):
    path: str = Field(..., description="Chemin du fichier à écrire")
    content: str = Field("", description="Contenu UTF-8")


@router.post("/read")
async def read_file(body: FileReadRequest):
    """Retourne {content} ou 500 {error}."""
    try:
        content = await read_text_file(body.path)
    except FileOperationError as e:
        return JSONResponse(status_code=500, content={"error": e.message})
    return {"content": content}


@router.post("/write")
async def write_file(body: FileWriteRequest):
    """Retourne {success} ou 500 {error}."""
    try:
        await write_text_file(body.path, body.content)
    except FileOperationError as e:
        return JSONResponse(status_code=500, content={"error": e.message})
    return {"success": True}
