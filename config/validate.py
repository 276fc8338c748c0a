"""
Configuration schema validation for the DEX pool feed.

Validates that all required config files exist and contain required keys.
Run at startup to fail fast on misconfiguration.
"""

from typing import Any

from config.loader import get_config


class ConfigValidationError(ValueError):
    """Raised when a required config key is missing or invalid."""

    pass


def _check_keys(config: dict[str, Any], required_keys: list[str], config_name: str) -> list[str]:
    """Check that all required keys exist in a config dict. Returns list of missing keys."""
    missing = []
    for key in required_keys:
        parts = key.split(".")
        current = config
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                missing.append(key)
                break
            current = current[part]
    return missing


def validate_app_config(config: dict[str, Any]) -> list[str]:
    """Validate app.json has required fields."""
    errors = _check_keys(
        config,
        [
            "chains",
            "files.ram_file",
            "files.bootstrap_file",
            "display.timezone",
        ],
        "app.json",
    )
    if not errors:
        chains = config.get("chains", [])
        if not isinstance(chains, list) or len(chains) == 0:
            errors.append("chains: must be a non-empty list")
    return errors


def validate_chain_config(config: dict[str, Any]) -> list[str]:
    """Validate chains/<id>.json has required fields."""
    return _check_keys(
        config,
        [
            "chain_id",
            "name",
            "rpc.http_url",
            "rpc.ws_url",
        ],
        "chains/<id>.json",
    )


def validate_websocket_config(config: dict[str, Any]) -> list[str]:
    """Validate websocket.json has required fields."""
    return _check_keys(
        config,
        [
            "connection.max_connection_attempts",
            "timeouts.subscription_response_timeout_seconds",
            "reconnection.base_delay_seconds",
            "reconnection.max_delay_seconds",
        ],
        "websocket.json",
    )


def validate_all_configs() -> None:
    """
    Validate all config files. Raises ConfigValidationError with details
    if any required keys are missing.
    """
    loader = get_config()
    all_errors: dict[str, list[str]] = {}

    validators = {
        "app.json": (loader.get_app_config, validate_app_config),
        "websocket.json": (loader.get_websocket_config, validate_websocket_config),
    }
    for chain_id in loader.get_chain_ids():
        validators[f"chains/{chain_id}.json"] = (
            lambda cid=chain_id: loader.get_chain_config(cid),
            validate_chain_config,
        )

    for config_name, (loader_fn, validator_fn) in validators.items():
        config = loader_fn()
        if not config:
            all_errors[config_name] = ["Config file is empty or not found"]
            continue
        errors = validator_fn(config)
        if errors:
            all_errors[config_name] = errors

    if all_errors:
        lines = ["Configuration validation failed:"]
        for config_name, errors in all_errors.items():
            lines.append(f"\n  {config_name}:")
            for error in errors:
                lines.append(f"    - missing: {error}")
        raise ConfigValidationError("\n".join(lines))
