"""
Startup validation of the JSON config files.

``validate_all_configs()`` collects every problem across app.json,
timing.json and aggregators.json and raises once, so a misconfigured
deployment fails before the first quote request.
"""

import re
from typing import Any, Callable

from config.loader import get_config
from shared.constants import BPS_DENOMINATOR
from shared.types import AggId

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class ConfigValidationError(ValueError):
    """Raised when a config file is missing keys or holds invalid values."""


def _missing(config: dict[str, Any], dotted_keys: list[str]) -> list[str]:
    """Dotted keys (``"aggregator.expiry_seconds"``) absent from ``config``."""
    missing = []
    for dotted in dotted_keys:
        node: Any = config
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                missing.append(dotted)
                break
            node = node[part]
    return missing


def validate_app_config(config: dict[str, Any]) -> list[str]:
    return _missing(config, ["default_integrator", "logging.log_dir"])


def validate_timing_config(config: dict[str, Any]) -> list[str]:
    errors = _missing(config, ["aggregator.request_timeout_seconds", "aggregator.expiry_seconds"])
    for key, value in config.get("aggregator", {}).items():
        if isinstance(value, (int, float)) and value <= 0:
            errors.append(f"aggregator.{key}: must be positive")
    return errors


def _validate_entry(name: str, entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        return [f"aggregators.{name}: must be an object"]
    errors = [f"aggregators.{name}.{k}" for k in _missing(entry, ["api_root"])]

    fee = entry.get("fee_bps", 0)
    if not isinstance(fee, int) or not 0 <= fee < BPS_DENOMINATOR:
        errors.append(f"aggregators.{name}.fee_bps: expected 0..{BPS_DENOMINATOR - 1}, got {fee!r}")

    for table in ("routers", "approval_addresses"):
        for chain, address in entry.get(table, {}).items():
            if not str(chain).isdigit():
                errors.append(f"aggregators.{name}.{table}: chain id {chain!r} is not numeric")
            elif not _ADDRESS_RE.match(str(address)):
                errors.append(f"aggregators.{name}.{table}.{chain}: invalid address")
    return errors


def validate_aggregator_config(config: dict[str, Any]) -> list[str]:
    """
    Check aggregators.json.

    Every entry needs an ``api_root`` and a known aggregator id, fees must
    be valid basis points, and the default and contract-call lists may only
    name configured aggregators.
    """
    errors = _missing(config, ["aggregators", "default_aggregators"])
    if errors:
        return errors

    entries = config["aggregators"]
    if not isinstance(entries, dict) or not entries:
        return ["aggregators: must be a non-empty mapping"]

    known = {a.value for a in AggId}
    for name, entry in entries.items():
        if name not in known:
            errors.append(f"aggregators.{name}: unknown aggregator id")
        else:
            errors.extend(_validate_entry(name, entry))

    for list_key in ("default_aggregators", "contract_call_aggregators"):
        errors.extend(
            f"{list_key}: {name} has no aggregators entry"
            for name in config.get(list_key, [])
            if name not in entries
        )
    return errors


def validate_all_configs() -> None:
    """Raise ``ConfigValidationError`` listing every problem found."""
    loader = get_config()
    checks: list[tuple[str, Callable[[], dict[str, Any]], Callable[[dict[str, Any]], list[str]]]] = [
        ("app.json", loader.get_app_config, validate_app_config),
        ("timing.json", loader.get_timing_config, validate_timing_config),
        ("aggregators.json", loader.get_aggregator_config, validate_aggregator_config),
    ]

    report: list[str] = []
    for file_name, load, validate in checks:
        config = load()
        problems = validate(config) if config else ["file is empty or not found"]
        if problems:
            report.append(f"  {file_name}:")
            report.extend(f"    - {problem}" for problem in problems)

    if report:
        raise ConfigValidationError("\n".join(["Configuration validation failed:", *report]))
