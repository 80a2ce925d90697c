"""Service config: YAML file + .env + environment overrides.

Defaults: loaded from config/config.yaml.example (single source of truth, no code-level defaults).
Environment wins over the file so secrets never need to live in YAML.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from web3 import Web3

from mint_service.core.errors import StartupConfigurationError

logger = logging.getLogger(__name__)

# Lazy-loaded example config (single source of truth for defaults)
_EXAMPLE_CONFIG: Optional[Dict[str, Any]] = None

# env var -> (section, key); first non-empty env var wins per key
_ENV_OVERRIDES = (
    ("CONTRACT_ADDRESS", ("contract", "address")),
    ("BASE_SEPOLIA_RPC", ("rpc", "url")),
    ("RPC_URL", ("rpc", "url")),
    ("PRIVATE_KEY", ("signer", "private_key")),
    ("MINT_INTERVAL_MINUTES", ("schedule", "interval_minutes")),
    ("PORT", ("status_server", "port")),
)

SCHEDULE_MODES = ("fixed_delay", "fixed_rate")


def _example_config_path() -> Path:
    return Path(__file__).resolve().parent.parent.parent / "config" / "config.yaml.example"


def _load_example_config() -> Dict[str, Any]:
    """Load config.yaml.example as defaults. No code-level defaults."""
    global _EXAMPLE_CONFIG
    if _EXAMPLE_CONFIG is None:
        # Lives beside the package, so only present in a source checkout or editable install
        path = _example_config_path()
        try:
            with open(path, encoding="utf-8") as f:
                _EXAMPLE_CONFIG = yaml.safe_load(f) or {}
        except OSError as e:
            raise StartupConfigurationError(f"Default config not found: {path}") from e
    return _EXAMPLE_CONFIG


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base. Override values take precedence."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _merged_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Merge config with example so missing keys come from config file."""
    return _deep_merge(_load_example_config(), cfg)


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Return a copy of config with CONTRACT_ADDRESS, PRIVATE_KEY, PORT, ... applied."""
    env = os.environ if environ is None else environ
    out = _deep_merge({}, config)
    seen = set()
    for var, (section, key) in _ENV_OVERRIDES:
        value = env.get(var)
        if not value or (section, key) in seen:
            continue
        seen.add((section, key))
        sect = out.get(section)
        if not isinstance(sect, dict):
            sect = {}
        out[section] = {**sect, key: value}
    return out


def read_config(config_path: Optional[str] = None) -> tuple[dict, str]:
    """Load .env, YAML config and env overrides. Returns (config, resolved_path)."""
    load_dotenv()
    config_path = config_path or os.environ.get("MINT_SERVICE_CONFIG", "config/config.yaml")
    if not Path(config_path).exists():
        config_path = str(_example_config_path())
    config_path = str(Path(config_path).resolve())
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except OSError as e:
        raise StartupConfigurationError(f"Cannot read config {config_path}: {e}") from e
    return apply_env_overrides(config), config_path


def get_service_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Return flat service config for MintService.

    Missing values from config/config.yaml.example. Values are not validated
    here; see validate_service_config.
    """
    merged = _merged_config(config or {})
    contract = merged.get("contract") or {}
    rpc = merged.get("rpc") or {}
    signer = merged.get("signer") or {}
    schedule = merged.get("schedule") or {}
    diagnostics = merged.get("diagnostics") or {}
    server = merged.get("status_server") or {}
    shutdown = merged.get("shutdown") or {}
    return {
        "contract_address": (contract.get("address") or "").strip(),
        "rpc_url": (rpc.get("url") or "").strip(),
        "confirmation_timeout_sec": rpc.get("confirmation_timeout_sec"),
        "poll_latency_sec": rpc.get("poll_latency_sec"),
        "private_key": (signer.get("private_key") or "").strip(),
        "interval_minutes": schedule.get("interval_minutes"),
        "schedule_mode": schedule.get("mode"),
        "capture_holders": bool(diagnostics.get("capture_holders")),
        "host": server.get("host"),
        "port": server.get("port"),
        "attempt_grace_sec": shutdown.get("attempt_grace_sec"),
    }


def validate_service_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Check a get_service_config() dict; coerce numeric fields. Raises StartupConfigurationError."""
    missing = [
        name
        for name, key in (
            ("contract.address (CONTRACT_ADDRESS)", "contract_address"),
            ("rpc.url (BASE_SEPOLIA_RPC)", "rpc_url"),
            ("signer.private_key (PRIVATE_KEY)", "private_key"),
        )
        if not cfg.get(key)
    ]
    if missing:
        raise StartupConfigurationError("Missing required configuration: " + ", ".join(missing))
    if not Web3.is_address(cfg["contract_address"]):
        raise StartupConfigurationError(f"Invalid contract address: {cfg['contract_address']!r}")

    out = dict(cfg)
    try:
        out["interval_minutes"] = float(cfg["interval_minutes"])
        out["port"] = int(cfg["port"])
        out["confirmation_timeout_sec"] = float(cfg["confirmation_timeout_sec"])
        out["poll_latency_sec"] = float(cfg["poll_latency_sec"])
        out["attempt_grace_sec"] = float(cfg["attempt_grace_sec"])
    except (TypeError, ValueError) as e:
        raise StartupConfigurationError(f"Invalid numeric configuration: {e}") from e
    if out["interval_minutes"] <= 0:
        raise StartupConfigurationError("schedule.interval_minutes must be > 0")
    if not 0 < out["port"] < 65536:
        raise StartupConfigurationError(f"status_server.port out of range: {out['port']}")
    if out["schedule_mode"] not in SCHEDULE_MODES:
        raise StartupConfigurationError(
            f"schedule.mode must be one of {SCHEDULE_MODES}, got {out['schedule_mode']!r}"
        )
    return out


def redacted(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Config safe to log: private key and RPC credentials hidden."""
    out = dict(cfg)
    if out.get("private_key"):
        out["private_key"] = "***"
    rpc_url = out.get("rpc_url") or ""
    if "://" in rpc_url:
        scheme, rest = rpc_url.split("://", 1)
        out["rpc_url"] = f"{scheme}://{rest.split('/', 1)[0]}/..."
    return out
