"""
Configuration loader for the swap aggregator router.

Provides centralized configuration management with .env overrides and
builds the immutable per-aggregator ``AggregatorConfig`` records consumed
by the adapters.

Usage:
    from config.loader import get_config, load_aggregator_configs

    config = get_config()
    timing = config.get_timing_config()
    configs = load_aggregator_configs()
"""

import json
import os
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from shared.constants import DEFAULT_INTEGRATOR, DEFAULT_RATE_LIMIT_RPS
from shared.types import AggId, AggregatorConfig

load_dotenv()

_CONFIG_DIR = Path(__file__).parent


def _load_json(filepath: Path) -> Dict[str, Any]:
    """Parse one config file; a missing or malformed file yields ``{}``."""
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
    """Typed environment lookup; blank or unparseable values fall back to ``default_value``."""
    value = os.getenv(var_name, None)
    if value is None or value.strip() == "":
        return default_value
    try:
        if var_type == bool:
            return value.lower() in ("true", "1", "yes")
        return var_type(value)
    except (ValueError, TypeError):
        return default_value


def normalize_api_root(url: str) -> str:
    """Ensure an API root carries a scheme and no trailing slash."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url.rstrip("/")


class ConfigLoader:
    """
    Process-wide access to the JSON files next to this module.

    Each file is read once; ``clear_cache()`` forces a re-read.
    """

    _instance: Optional["ConfigLoader"] = None

    def __init__(self):
        self._config_dir = _CONFIG_DIR

    @classmethod
    def get_instance(cls) -> "ConfigLoader":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------
    # JSON files
    # ------------------------------------------------------------------

    @lru_cache(maxsize=1)
    def get_app_config(self) -> Dict[str, Any]:
        """Load general application settings (integrator default, logging)."""
        return _load_json(self._config_dir / "app.json")

    @lru_cache(maxsize=1)
    def get_timing_config(self) -> Dict[str, Any]:
        """Load timeouts and per-aggregator deadlines."""
        return _load_json(self._config_dir / "timing.json")

    @lru_cache(maxsize=1)
    def get_aggregator_config(self) -> Dict[str, Any]:
        """Load aggregator API roots, router tables and selection defaults."""
        return _load_json(self._config_dir / "aggregators.json")

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        for loader in (self.get_app_config, self.get_timing_config, self.get_aggregator_config):
            loader.cache_clear()


# ---------------------------------------------------------------------------
# Aggregator config builders
# ---------------------------------------------------------------------------


def _chain_table(raw: Optional[Mapping[str, Any]]) -> Mapping[int, str]:
    """Convert a JSON ``{"<chainId>": value}`` table to a read-only int-keyed mapping."""
    return MappingProxyType({int(k): str(v) for k, v in (raw or {}).items()})


def build_aggregator_config(
    agg_id: AggId,
    entry: Mapping[str, Any],
    default_integrator: str = DEFAULT_INTEGRATOR,
) -> AggregatorConfig:
    """
    Build one ``AggregatorConfig`` from its JSON entry and ``<ID>_*`` env vars.

    Env vars win over JSON: ``<ID>_API_BASE_URL``, ``<ID>_API_KEY``,
    ``<ID>_INTEGRATOR``, ``<ID>_REFERRER``, ``<ID>_FEE_BPS``.
    """
    prefix = agg_id.value
    routers = _chain_table(entry.get("routers"))
    approvals = entry.get("approval_addresses")
    return AggregatorConfig(
        aggregator_id=agg_id,
        api_root=normalize_api_root(
            get_env_var(f"{prefix}_API_BASE_URL", entry.get("api_root", ""), str)
        ),
        api_key=get_env_var(f"{prefix}_API_KEY", entry.get("api_key", ""), str),
        integrator=get_env_var(
            f"{prefix}_INTEGRATOR", entry.get("integrator") or default_integrator, str
        ),
        referrer=get_env_var(f"{prefix}_REFERRER", str(entry.get("referrer") or ""), str),
        fee_bps=get_env_var(f"{prefix}_FEE_BPS", int(entry.get("fee_bps", 0)), int),
        rate_limit_rps=float(entry.get("rate_limit_rps", DEFAULT_RATE_LIMIT_RPS)),
        routers=routers,
        # Approval target defaults to the router table
        approval_addresses=_chain_table(approvals) if approvals is not None else routers,
        aliases=_chain_table(entry.get("aliases")),
    )


def load_aggregator_configs(
    raw: Optional[Mapping[str, Any]] = None,
) -> Dict[AggId, AggregatorConfig]:
    """
    Build the process-wide aggregator config mapping.

    Called once at startup, before any request is dispatched.  Entries for
    unknown aggregator ids are ignored.
    """
    if raw is None:
        raw = get_config().get_aggregator_config()
    entries = raw.get("aggregators", {})
    default_integrator = (
        get_config().get_app_config().get("default_integrator") or DEFAULT_INTEGRATOR
    )
    configs: Dict[AggId, AggregatorConfig] = {}
    for agg_id in AggId:
        entry = entries.get(agg_id.value)
        if entry is None:
            continue
        configs[agg_id] = build_aggregator_config(agg_id, entry, default_integrator)
    return configs


def apply_overrides(
    configs: Mapping[AggId, AggregatorConfig],
    api_keys: Optional[Mapping[str, str]] = None,
    integrators: Optional[Mapping[str, str]] = None,
    referrers: Optional[Mapping[str, Any]] = None,
    fees_bps: Optional[Mapping[str, int]] = None,
) -> Dict[AggId, AggregatorConfig]:
    """
    Return a new config mapping with explicit per-aggregator overrides applied.

    Overrides are keyed by aggregator id string (e.g. ``{"LIFI": "key"}``).
    The input mapping is left untouched.
    """
    updated: Dict[AggId, AggregatorConfig] = {}
    for agg_id, cfg in configs.items():
        changes: Dict[str, Any] = {}
        key = agg_id.value
        if api_keys and key in api_keys:
            changes["api_key"] = str(api_keys[key])
        if integrators and key in integrators:
            changes["integrator"] = str(integrators[key])
        if referrers and key in referrers:
            changes["referrer"] = str(referrers[key])
        if fees_bps and key in fees_bps:
            changes["fee_bps"] = int(fees_bps[key])
        updated[agg_id] = replace(cfg, **changes) if changes else cfg
    return updated


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

def get_config() -> ConfigLoader:
    """Get the singleton ConfigLoader instance."""
    return ConfigLoader.get_instance()
