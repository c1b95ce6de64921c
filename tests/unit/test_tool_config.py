"""
Tests unitaires pour le chargement de la configuration d'outils (MCP).
"""
import json

import pytest

from kre8_bridge.config.settings import ToolConfigSettings
from kre8_bridge.core.models import Session
from kre8_bridge.services.tool_config import ToolConfigLoader


@pytest.mark.unit
@pytest.mark.asyncio
async def test_load_returns_servers(tool_config_file):
    loader = ToolConfigLoader(ToolConfigSettings(path=str(tool_config_file)))
    servers = await loader.load()

    assert sorted(servers) == ["filesystem", "github"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_file_is_empty(tmp_path):
    loader = ToolConfigLoader(ToolConfigSettings(path=str(tmp_path / "nope.json")))
    assert await loader.load() == {}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_json_is_empty(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{mcpServers: ", encoding="utf-8")

    loader = ToolConfigLoader(ToolConfigSettings(path=str(path)))
    assert await loader.load() == {}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_file_without_servers_key_is_empty(tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

    loader = ToolConfigLoader(ToolConfigSettings(path=str(path)))
    assert await loader.load() == {}


@pytest.mark.unit
def test_path_expands_user(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    loader = ToolConfigLoader(ToolConfigSettings(path="~/tools.json"))

    assert loader.path == str(tmp_path / "tools.json")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_loaded_reads_once(tool_config_file):
    loader = ToolConfigLoader(ToolConfigSettings(path=str(tool_config_file)))
    session = Session(session_id="s1")

    assert await loader.ensure_loaded(session) is True
    assert session.tool_count == 2

    tool_config_file.write_text(json.dumps({"mcpServers": {}}), encoding="utf-8")
    assert await loader.ensure_loaded(session) is True
    assert session.tool_count == 2
