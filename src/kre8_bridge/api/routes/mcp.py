"""
Routes API MCP: serveurs configurés et exécution d'outil via la CLI Claude.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...bridge import Bridge
from ...core.constants import STATELESS_SESSION_ID
from ...core.models import ProcessSpec
from ..dependencies import get_bridge

logger = logging.getLogger(__name__)

router = APIRouter()


class MCPExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool: str = Field(..., min_length=1, description="Nom de l'outil MCP")
    params: Dict[str, Any] = Field(default_factory=dict, description="Paramètres de l'outil")
    session_id: Optional[str] = Field(None, alias="sessionId")


def build_execute_spec(command: str, tool: str, params: Dict[str, Any]) -> ProcessSpec:
    """Construit l'appel CLI en argv: aucun passage par le shell."""
    return ProcessSpec(argv=[
        command, "mcp", "execute",
        "--tool", tool,
        "--params", json.dumps(params),
    ])


@router.get("/tools")
async def list_tools(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    bridge: Bridge = Depends(get_bridge),
):
    """Liste les serveurs MCP de la configuration d'outils."""
    session = await bridge.router.session_for(session_id or STATELESS_SESSION_ID)
    return {"tools": sorted(session.tool_config.keys())}


@router.post("/execute")
async def execute_tool(body: MCPExecuteRequest, bridge: Bridge = Depends(get_bridge)):
    """Exécute un outil MCP; 500 {error} si la CLI échoue."""
    spec = build_execute_spec(bridge.settings.assistant.claude_command, body.tool, body.params)
    result = await bridge.executor.execute(spec)
    if not result.ok:
        logger.info("Outil MCP %s en erreur: %s", body.tool, result.error_message)
        return JSONResponse(status_code=500, content={"error": result.error_message})
    return {"result": result.stdout}
