"""
Configuration des tests pytest.
"""
import json
import os
import sys

import pytest

# Ajoute src au path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from kre8_bridge.config.loader import _clear_config_cache  # noqa: E402
from kre8_bridge.config.settings import (  # noqa: E402
    BridgeSettings,
    ChannelSettings,
    ExecutorSettings,
    ToolConfigSettings,
)


def pytest_configure(config):
    """Enregistre les marqueurs utilisés par la suite."""
    config.addinivalue_line("markers", "asyncio: marque un test comme asynchrone")
    config.addinivalue_line("markers", "unit: test unitaire (aucun réseau externe)")
    config.addinivalue_line("markers", "integration: test d'intégration (app FastAPI complète)")


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Isole le cache global de configuration entre les tests."""
    _clear_config_cache()
    yield
    _clear_config_cache()


@pytest.fixture
def tool_config_file(tmp_path):
    """Fichier de configuration d'outils avec deux serveurs MCP."""
    path = tmp_path / "claude_desktop_config.json"
    path.write_text(json.dumps({
        "mcpServers": {
            "github": {"command": "npx", "args": ["@modelcontextprotocol/server-github"]},
            "filesystem": {"command": "npx", "args": ["@modelcontextprotocol/server-filesystem", "/tmp"]},
        }
    }), encoding="utf-8")
    return path


@pytest.fixture
def bridge_settings(tmp_path):
    """Settings de test: pas de config d'outils, heartbeat lent."""
    return BridgeSettings(
        channel=ChannelSettings(heartbeat_interval_s=30.0),
        executor=ExecutorSettings(shell="bash"),
        tools=ToolConfigSettings(path=str(tmp_path / "missing_tools.json")),
    )


@pytest.fixture
def bridge_settings_with_tools(tool_config_file):
    """Settings de test pointant sur une config d'outils valide."""
    return BridgeSettings(tools=ToolConfigSettings(path=str(tool_config_file)))
