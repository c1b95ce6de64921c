"""
Routes API Ollama: statut, modèles installés, génération one-shot.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...bridge import Bridge
from ...core.exceptions import ExecutorError
from ..dependencies import get_bridge

router = APIRouter()


class GenerateRequest(BaseModel):
    prompt: str = Field(..., description="Prompt envoyé au modèle")
    model: Optional[str] = Field(None, description="Modèle (défaut: config)")


@router.get("/status")
async def ollama_status(bridge: Bridge = Depends(get_bridge)):
    version = await bridge.ollama.version()
    return {
        "running": version is not None,
        "version": version,
        "url": bridge.ollama.base_url,
    }


@router.get("/models")
async def ollama_models(bridge: Bridge = Depends(get_bridge)):
    try:
        models = await bridge.ollama.list_models()
    except ExecutorError as e:
        return JSONResponse(status_code=500, content={"error": e.message})
    return {"models": models}


@router.post("/generate")
async def ollama_generate(body: GenerateRequest, bridge: Bridge = Depends(get_bridge)):
    try:
        text = await bridge.ollama.generate(body.prompt, model=body.model)
    except ExecutorError as e:
        return JSONResponse(status_code=500, content={"error": e.message})
    return {"response": text}
