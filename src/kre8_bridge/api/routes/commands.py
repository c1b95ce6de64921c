"""
Routes API d'exécution: commande routée (/api/claude) et shell brut (/api/bash).

La distinction d'erreur est volontaire:
- /api/claude: une enveloppe `error` répond HTTP 500
- /api/bash: toujours 200 avec {output, error, exitCode}, même si le
  sous-processus échoue
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...bridge import Bridge
from ...core.constants import STATELESS_SESSION_ID
from ..dependencies import get_bridge

logger = logging.getLogger(__name__)

router = APIRouter()


class ClaudeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., description="Commande ou texte libre")
    session_id: Optional[str] = Field(None, alias="sessionId", description="Session propriétaire")
    use_tools: Optional[bool] = Field(None, alias="useTools", description="Outils de la CLI Claude (défaut: config)")


class BashRequest(BaseModel):
    command: str = Field(..., description="Commande shell exécutée via `shell -c`")


@router.post("/api/claude")
async def submit_command(body: ClaudeRequest, bridge: Bridge = Depends(get_bridge)):
    """
    Route une commande et retourne l'enveloppe de réponse.

    Si la session a un canal attaché, la même réponse y est aussi publiée.
    """
    session_id = body.session_id or STATELESS_SESSION_ID
    envelope = await bridge.router.route_text(body.message, session_id, use_tools=body.use_tools)

    if not envelope.ok:
        logger.info("Commande en erreur (%s): %s", envelope.kind.value, envelope.error)
        return JSONResponse(status_code=500, content=envelope.to_dict())
    return envelope.to_dict()


@router.post("/api/bash")
async def run_bash(body: BashRequest, bridge: Bridge = Depends(get_bridge)):
    """Exécute une commande shell brute, sans classification."""
    result = await bridge.executor.run_shell(body.command)
    return result.to_dict()
