"""
Chargement de la configuration d'outils (serveurs MCP) par session.

Source: le fichier JSON de Claude Desktop (`mcpServers`). Un fichier absent
ou invalide donne une config vide: le bridge fonctionne sans outils.
"""
import json
import logging
import os
from typing import Any, Dict

import aiofiles

from ..config.settings import ToolConfigSettings
from ..core.constants import TOOL_CONFIG_SERVERS_KEY
from ..core.models import Session

logger = logging.getLogger(__name__)


class ToolConfigLoader:
    """Lit le fichier de configuration d'outils à la demande."""

    def __init__(self, settings: ToolConfigSettings = None):
        self.settings = settings or ToolConfigSettings()

    @property
    def path(self) -> str:
        return os.path.expanduser(self.settings.path)

    async def load(self) -> Dict[str, Any]:
        """
        Retourne `{nom_serveur: config}`.

        Returns:
            Dictionnaire vide si le fichier est absent ou illisible
        """
        path = self.path
        if not os.path.exists(path):
            return {}

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Configuration MCP illisible (%s): %s", path, e)
            return {}

        servers = data.get(TOOL_CONFIG_SERVERS_KEY) if isinstance(data, dict) else None
        if not isinstance(servers, dict):
            return {}

        logger.info("Configuration MCP trouvée: %d serveur(s)", len(servers))
        return dict(servers)

    async def ensure_loaded(self, session: Session) -> bool:
        """
        Charge la config d'outils dans la session si ce n'est pas déjà fait.

        Returns:
            True si la session a au moins un outil configuré
        """
        if not session.tool_config_loaded:
            session.tool_config = await self.load()
            session.tool_config_loaded = True
            for name in session.tool_config:
                logger.debug("Session %s: serveur MCP %s", session.session_id, name)
        return bool(session.tool_config)
