"""
Configuration loader for the DEX pool feed.

Provides centralized configuration management with .env overrides.
Per-chain files live in config/chains/<chain_id>.json, ABIs in config/abis/.

Usage:
    from config.loader import get_config, get_env_var

    config = get_config()
    chain_config = config.get_chain_config(250)
    ws_url = config.get_ws_url(250)
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

# Resolve config directory relative to this file
_CONFIG_DIR = Path(__file__).parent
_PROJECT_ROOT = _CONFIG_DIR.parent


def _load_json(filepath: Path) -> Dict[str, Any]:
    """Load a JSON config file. Returns empty dict if file doesn't exist."""
    try:
        with open(filepath, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"[CONFIG_WARN] Config file not found: {filepath}")
        return {}
    except json.JSONDecodeError as e:
        print(f"[CONFIG_ERROR] Invalid JSON in {filepath}: {e}")
        return {}


def get_env_var(var_name: str, default_value: Any, var_type: type) -> Any:
    """Get environment variable with type conversion and fallback."""
    value = os.getenv(var_name, None)
    if value is None:
        return default_value
    try:
        if var_type == bool:
            return value.lower() in ("true", "1", "yes")
        return var_type(value)
    except (ValueError, TypeError):
        return default_value


class ConfigLoader:
    """
    Central configuration manager for the pool feed.

    Loads configuration from JSON files in the config/ directory with .env overrides.
    All accessor methods are cached via @lru_cache.
    """

    _instance: Optional["ConfigLoader"] = None

    def __init__(self):
        self._config_dir = _CONFIG_DIR
        self._project_root = _PROJECT_ROOT

    @classmethod
    def get_instance(cls) -> "ConfigLoader":
        """Singleton accessor."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------
    # Core config file loaders (cached)
    # ------------------------------------------------------------------

    @lru_cache(maxsize=8)
    def get_chain_config(self, chain_id: int) -> Dict[str, Any]:
        """Load chain-specific config (e.g. 250 = Fantom, 43114 = Avalanche C-chain)."""
        return _load_json(self._config_dir / "chains" / f"{chain_id}.json")

    @lru_cache(maxsize=1)
    def get_app_config(self) -> Dict[str, Any]:
        """Load general application settings."""
        return _load_json(self._config_dir / "app.json")

    @lru_cache(maxsize=1)
    def get_websocket_config(self) -> Dict[str, Any]:
        """Load WebSocket connection and reconnection settings."""
        return _load_json(self._config_dir / "websocket.json")

    def get_chain_ids(self) -> List[int]:
        """Chain ids the feed is allowed to subscribe to."""
        return [int(c) for c in self.get_app_config().get("chains", [])]

    # ------------------------------------------------------------------
    # Endpoint helpers (env overrides win over chain files)
    # ------------------------------------------------------------------

    def get_ws_url(self, chain_id: int) -> str:
        """WebSocket endpoint for a chain. Override: RPC_URL_WS_<chain_id>."""
        default = self.get_chain_config(chain_id).get("rpc", {}).get("ws_url", "")
        return get_env_var(f"RPC_URL_WS_{chain_id}", default, str)

    def get_http_url(self, chain_id: int) -> str:
        """HTTP endpoint for a chain. Override: RPC_URL_HTTP_<chain_id>."""
        default = self.get_chain_config(chain_id).get("rpc", {}).get("http_url", "")
        return get_env_var(f"RPC_URL_HTTP_{chain_id}", default, str)

    def get_chain_name(self, chain_id: int) -> str:
        return self.get_chain_config(chain_id).get("name", f"chain-{chain_id}")

    # ------------------------------------------------------------------
    # ABI loader
    # ------------------------------------------------------------------

    @lru_cache(maxsize=32)
    def get_abi(self, abi_name: str) -> list:
        """Load ABI from config/abis/<abi_name>.json."""
        data = _load_json(self._config_dir / "abis" / f"{abi_name}.json")
        # ABI files are either raw arrays or {"abi": [...]}
        if isinstance(data, list):
            return data
        return data.get("abi", [])

    # ------------------------------------------------------------------
    # File paths (ram / bootstrap metadata)
    # ------------------------------------------------------------------

    def get_ram_file(self) -> str:
        default = self.get_app_config().get("files", {}).get("ram_file", "ram.data")
        return get_env_var("RAM_FILE", default, str)

    def get_bootstrap_file(self) -> str:
        default = self.get_app_config().get("files", {}).get("bootstrap_file", "bootstrap.data")
        return get_env_var("BOOTSTRAP_FILE", default, str)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Clear all cached configurations (useful for testing)."""
        for method_name in dir(self):
            method = getattr(self, method_name)
            if hasattr(method, "cache_clear"):
                method.cache_clear()


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

def get_config() -> ConfigLoader:
    """Get the singleton ConfigLoader instance."""
    return ConfigLoader.get_instance()
