"""src.kre8_bridge.config.loader

Chargement de la configuration TOML.

Note d'architecture:
- Le package `config/` est consommé par `services/` et `api/`.
- Il ne dépend que de `core/` afin d'éviter les imports circulaires.
- Un fichier absent n'est pas une erreur: le bridge démarre avec les défauts.
"""
import os
import re
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional, List

from ..core.constants import ASSISTANT_BACKENDS
from ..core.exceptions import ConfigurationError
from .settings import (
    AssistantSettings,
    BridgeSettings,
    ChannelSettings,
    ExecutorSettings,
    ServerSettings,
    ToolConfigSettings,
)

CONFIG_ENV_VAR = "KRE8_BRIDGE_CONFIG"

# Cache global de configuration
_config_cache: Optional[Dict[str, Any]] = None

_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


def _expand_env_vars(obj: Any) -> Any:
    """
    Récursivement étend les variables d'environnement ${VAR} dans la config.

    Args:
        obj: Valeur à traiter (str, dict, list)

    Returns:
        Valeur avec variables d'environnement expansées
    """
    if isinstance(obj, str):
        def replace_env_var(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))
        return _ENV_VAR_PATTERN.sub(replace_env_var, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def _clear_config_cache():
    """Vide le cache de configuration."""
    global _config_cache
    _config_cache = None


def _default_config_path() -> str:
    """
    Chemin de config.toml: variable d'environnement, sinon racine du projet.

    Structure: project/src/kre8_bridge/config/loader.py
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    current_file = os.path.abspath(__file__)
    project_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(current_file))))
    return os.path.join(project_dir, "config.toml")


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Charge la configuration depuis config.toml.

    Args:
        config_path: Chemin vers le fichier config (optionnel)

    Returns:
        Dictionnaire de configuration ({} si le fichier n'existe pas)

    Raises:
        ConfigurationError: Si le fichier existe mais n'est pas du TOML valide
    """
    global _config_cache

    if _config_cache is not None and config_path is None:
        return _config_cache

    path = Path(config_path or _default_config_path())
    if not path.exists():
        _config_cache = {}
        return _config_cache

    try:
        with open(path, "rb") as f:
            raw_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            message=f"Fichier de configuration invalide ({path}): {e}",
            config_key="config_path"
        ) from e

    _config_cache = _expand_env_vars(raw_config)
    return _config_cache


def reload_config(config_path: str = None) -> Dict[str, Any]:
    """
    Recharge la configuration depuis le fichier.

    Returns:
        Nouvelle configuration chargée
    """
    _clear_config_cache()
    return load_config(config_path)


def get_config() -> Dict[str, Any]:
    """
    Retourne la configuration en cache.

    Returns:
        Configuration actuelle
    """
    if _config_cache is None:
        return load_config()
    return _config_cache


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    obj = config.get(name)
    return obj if isinstance(obj, dict) else {}


def _clamp_float(value: object, *, default: float, min_value: float, max_value: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        v = float(value)
    else:
        return default
    if v < min_value:
        return min_value
    if v > max_value:
        return max_value
    return v


def _clamp_int(value: object, *, default: int, min_value: int, max_value: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        v = value
    elif isinstance(value, float):
        v = int(value)
    else:
        return default
    if v < min_value:
        return min_value
    if v > max_value:
        return max_value
    return v


def _str_or(value: object, default: str) -> str:
    return value if isinstance(value, str) and value.strip() else default


def _str_list_or(value: object, default: List[str]) -> List[str]:
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    return list(default)


def get_server_settings(config: Dict[str, Any]) -> ServerSettings:
    """Charge la section `[server]`."""
    defaults = ServerSettings()
    obj = _section(config, "server")
    return ServerSettings(
        host=_str_or(obj.get("host"), defaults.host),
        port=_clamp_int(obj.get("port", defaults.port), default=defaults.port, min_value=1, max_value=65535),
        cors_origins=_str_list_or(obj.get("cors_origins"), defaults.cors_origins),
    )


def get_channel_settings(config: Dict[str, Any]) -> ChannelSettings:
    """Charge la section `[channel]`."""
    defaults = ChannelSettings()
    obj = _section(config, "channel")
    return ChannelSettings(
        heartbeat_interval_s=_clamp_float(
            obj.get("heartbeat_interval_s", defaults.heartbeat_interval_s),
            default=defaults.heartbeat_interval_s,
            min_value=0.01,
            max_value=3600.0,
        ),
        default_session_id=_str_or(obj.get("default_session_id"), defaults.default_session_id),
    )


def get_executor_settings(config: Dict[str, Any]) -> ExecutorSettings:
    """
    Charge la section `[executor]`.

    `timeout_s` absent ou <= 0: pas de timeout.
    """
    defaults = ExecutorSettings()
    obj = _section(config, "executor")

    timeout_obj = obj.get("timeout_s")
    timeout_s: Optional[float] = None
    if isinstance(timeout_obj, (int, float)) and not isinstance(timeout_obj, bool) and timeout_obj > 0:
        timeout_s = min(float(timeout_obj), 86400.0)

    cwd_obj = obj.get("cwd")
    cwd = os.path.expanduser(cwd_obj) if isinstance(cwd_obj, str) and cwd_obj else defaults.cwd

    return ExecutorSettings(
        shell=_str_or(obj.get("shell"), defaults.shell),
        timeout_s=timeout_s,
        cwd=cwd,
    )


def get_tool_config_settings(config: Dict[str, Any]) -> ToolConfigSettings:
    """Charge la section `[tools]`."""
    defaults = ToolConfigSettings()
    obj = _section(config, "tools")
    return ToolConfigSettings(path=_str_or(obj.get("config_path"), defaults.path))


def get_assistant_settings(config: Dict[str, Any]) -> AssistantSettings:
    """Charge la section `[assistant]` (backend inconnu -> "echo")."""
    defaults = AssistantSettings()
    obj = _section(config, "assistant")

    backend_obj = obj.get("backend", defaults.backend)
    backend = defaults.backend
    if isinstance(backend_obj, str) and backend_obj.strip().lower() in ASSISTANT_BACKENDS:
        backend = backend_obj.strip().lower()

    return AssistantSettings(
        backend=backend,
        claude_command=_str_or(obj.get("claude_command"), defaults.claude_command),
        claude_args=_str_list_or(obj.get("claude_args"), defaults.claude_args),
        allow_tools=bool(obj.get("allow_tools", defaults.allow_tools)),
        ollama_url=_str_or(obj.get("ollama_url"), defaults.ollama_url).rstrip("/"),
        ollama_model=_str_or(obj.get("ollama_model"), defaults.ollama_model),
        http_timeout_s=_clamp_float(
            obj.get("http_timeout_s", defaults.http_timeout_s),
            default=defaults.http_timeout_s,
            min_value=1.0,
            max_value=3600.0,
        ),
    )


def get_bridge_settings(config: Dict[str, Any] = None) -> BridgeSettings:
    """
    Construit les settings typés depuis le TOML.

    Propriétés:
    - Fallback robuste si section absente/incomplète
    - Validation/clamp des types pour éviter crash runtime
    """
    if config is None:
        config = get_config()
    return BridgeSettings(
        server=get_server_settings(config),
        channel=get_channel_settings(config),
        executor=get_executor_settings(config),
        tools=get_tool_config_settings(config),
        assistant=get_assistant_settings(config),
    )
