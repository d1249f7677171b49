"""
Unit tests for config/loader.py and config/validate.py.

Tests cover:
- JSON config file loading
- Environment variable overrides with type coercion
- Singleton pattern for ConfigLoader
- Aggregator config building and explicit overrides
- Config validation (validate_all_configs)
- Cache management
"""

from __future__ import annotations

import os
from types import MappingProxyType
from unittest.mock import MagicMock, patch

import pytest

from config.loader import (
    ConfigLoader,
    apply_overrides,
    build_aggregator_config,
    get_config,
    get_env_var,
    load_aggregator_configs,
    normalize_api_root,
)
from config.validate import (
    ConfigValidationError,
    validate_aggregator_config,
    validate_all_configs,
    validate_app_config,
    validate_timing_config,
)
from shared.types import AggId

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SAMPLE_ENTRY = {
    "api_root": "li.quest/v1/",
    "fee_bps": 5,
    "rate_limit_rps": 4,
    "routers": {"56": "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"},
    "aliases": {"56": "BSC"},
}


@pytest.fixture(autouse=True)
def reset_singleton():
    """Reset the ConfigLoader singleton between tests."""
    ConfigLoader._instance = None
    yield
    ConfigLoader._instance = None


# ===========================================================================
# ConfigLoader tests
# ===========================================================================


class TestConfigLoaderSingleton:
    def test_get_instance_returns_same_object(self):
        """Singleton pattern should return the same instance."""
        a = ConfigLoader.get_instance()
        b = ConfigLoader.get_instance()
        assert a is b

    def test_get_config_returns_singleton(self):
        """Module-level get_config() should return singleton."""
        cfg = get_config()
        assert cfg is ConfigLoader.get_instance()


class TestConfigLoading:
    def test_get_aggregator_config(self):
        """Shipped aggregator config lists every default aggregator."""
        agg = get_config().get_aggregator_config()
        assert set(agg["default_aggregators"]) <= set(agg["aggregators"])
        assert agg["contract_call_aggregators"] == ["LIFI"]

    def test_get_timing_config(self):
        timing = get_config().get_timing_config()
        assert timing["aggregator"]["expiry_seconds"] > 0

    def test_get_app_config(self):
        app = get_config().get_app_config()
        assert app["default_integrator"]
        assert "log_dir" in app["logging"]

    def test_missing_config_returns_empty_dict(self, tmp_path):
        """A missing JSON file yields an empty dict rather than raising."""
        loader = ConfigLoader()
        loader._config_dir = tmp_path
        assert loader.get_timing_config() == {}


class TestCacheManagement:
    def test_cache_produces_same_result(self):
        """Cached calls should return the same object."""
        cfg = get_config()
        assert cfg.get_aggregator_config() is cfg.get_aggregator_config()

    def test_clear_cache(self):
        """clear_cache should allow fresh loads."""
        cfg = get_config()
        _ = cfg.get_aggregator_config()
        cfg.clear_cache()
        assert isinstance(cfg.get_aggregator_config(), dict)


# ===========================================================================
# get_env_var tests
# ===========================================================================


class TestGetEnvVar:
    def test_int_conversion(self):
        """Integer env vars should be converted."""
        with patch.dict(os.environ, {"TEST_INT": "42"}):
            assert get_env_var("TEST_INT", 0, int) == 42

    def test_bool_values(self):
        for val in ("true", "1", "yes"):
            with patch.dict(os.environ, {"TEST_BOOL": val}):
                assert get_env_var("TEST_BOOL", False, bool) is True

    def test_missing_var_returns_default(self):
        os.environ.pop("DEFINITELY_NOT_SET_XYZ", None)
        assert get_env_var("DEFINITELY_NOT_SET_XYZ", "fallback", str) == "fallback"

    def test_blank_var_returns_default(self):
        with patch.dict(os.environ, {"TEST_BLANK": "  "}):
            assert get_env_var("TEST_BLANK", "fallback", str) == "fallback"

    def test_invalid_int_returns_default(self):
        with patch.dict(os.environ, {"TEST_BAD_INT": "abc"}):
            assert get_env_var("TEST_BAD_INT", 99, int) == 99


# ===========================================================================
# Aggregator config tests
# ===========================================================================


class TestNormalizeApiRoot:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("li.quest/v1/", "https://li.quest/v1"),
            ("https://api.paraswap.io", "https://api.paraswap.io"),
            (" http://localhost:8080/ ", "http://localhost:8080"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_api_root(raw) == expected


class TestBuildAggregatorConfig:
    def test_from_json_entry(self):
        cfg = build_aggregator_config(AggId.LIFI, SAMPLE_ENTRY, "btr-swap")
        assert cfg.api_root == "https://li.quest/v1"
        assert cfg.fee_bps == 5
        assert cfg.rate_limit_rps == 4
        assert cfg.integrator == "btr-swap"
        assert cfg.routers[56] == SAMPLE_ENTRY["routers"]["56"]
        assert cfg.aliases[56] == "BSC"
        # Approval target defaults to the router
        assert cfg.approval_addresses[56] == SAMPLE_ENTRY["routers"]["56"]

    def test_tables_are_read_only(self):
        cfg = build_aggregator_config(AggId.LIFI, SAMPLE_ENTRY)
        assert isinstance(cfg.routers, MappingProxyType)
        with pytest.raises(TypeError):
            cfg.routers[1] = "0x"  # type: ignore[index]

    def test_env_overrides(self):
        env = {
            "LIFI_API_KEY": "secret",
            "LIFI_API_BASE_URL": "staging.li.quest/v1",
            "LIFI_INTEGRATOR": "custom",
            "LIFI_FEE_BPS": "12",
        }
        with patch.dict(os.environ, env):
            cfg = build_aggregator_config(AggId.LIFI, SAMPLE_ENTRY)
        assert cfg.api_key == "secret"
        assert cfg.api_root == "https://staging.li.quest/v1"
        assert cfg.integrator == "custom"
        assert cfg.fee_bps == 12


class TestLoadAggregatorConfigs:
    def test_skips_unknown_and_missing_entries(self):
        raw = {"aggregators": {"LIFI": SAMPLE_ENTRY, "NOT_AN_AGGREGATOR": SAMPLE_ENTRY}}
        configs = load_aggregator_configs(raw)
        assert list(configs) == [AggId.LIFI]

    def test_global_integrator_default(self):
        with patch("config.loader.get_config") as mock_cfg:
            mock_loader = MagicMock()
            mock_loader.get_app_config.return_value = {"default_integrator": "global-int"}
            mock_cfg.return_value = mock_loader
            configs = load_aggregator_configs({"aggregators": {"LIFI": SAMPLE_ENTRY}})
        assert configs[AggId.LIFI].integrator == "global-int"

    def test_shipped_config_builds_every_aggregator(self):
        configs = load_aggregator_configs()
        assert set(configs) == set(AggId)
        assert all(cfg.api_root.startswith("https://") for cfg in configs.values())


class TestApplyOverrides:
    def test_returns_new_mapping(self):
        configs = load_aggregator_configs({"aggregators": {"LIFI": SAMPLE_ENTRY}})
        updated = apply_overrides(
            configs,
            api_keys={"LIFI": "k"},
            referrers={"LIFI": "0x000000000000000000000000000000000000dEaD"},
            fees_bps={"LIFI": 20},
        )
        assert updated is not configs
        assert updated[AggId.LIFI].api_key == "k"
        assert updated[AggId.LIFI].fee_bps == 20
        # Original untouched
        assert configs[AggId.LIFI].api_key == ""
        assert configs[AggId.LIFI].fee_bps == 5

    def test_untouched_entries_are_shared(self):
        configs = load_aggregator_configs({"aggregators": {"LIFI": SAMPLE_ENTRY}})
        updated = apply_overrides(configs, integrators={"ONE_INCH": "x"})
        assert updated[AggId.LIFI] is configs[AggId.LIFI]


# ===========================================================================
# Config validation tests
# ===========================================================================


class TestValidateAppConfig:
    def test_valid(self):
        assert validate_app_config({"default_integrator": "x", "logging": {"log_dir": "logs"}}) == []

    def test_missing_log_dir(self):
        assert "logging.log_dir" in validate_app_config({"default_integrator": "x"})


class TestValidateTimingConfig:
    def test_missing_expiry(self):
        errors = validate_timing_config({"aggregator": {"request_timeout_seconds": 5}})
        assert errors == ["aggregator.expiry_seconds"]


class TestValidateAggregatorConfig:
    def test_valid_aggregator_config(self):
        cfg = {"default_aggregators": ["LIFI"], "aggregators": {"LIFI": SAMPLE_ENTRY}}
        assert validate_aggregator_config(cfg) == []

    def test_unknown_aggregator(self):
        cfg = {"default_aggregators": [], "aggregators": {"FOO": {"api_root": "x"}}}
        assert any("unknown aggregator" in e for e in validate_aggregator_config(cfg))

    def test_missing_api_root(self):
        cfg = {"default_aggregators": ["LIFI"], "aggregators": {"LIFI": {}}}
        assert "aggregators.LIFI.api_root" in validate_aggregator_config(cfg)

    def test_default_without_entry(self):
        cfg = {"default_aggregators": ["ONE_INCH"], "aggregators": {"LIFI": SAMPLE_ENTRY}}
        assert any("ONE_INCH" in e for e in validate_aggregator_config(cfg))

    def test_fee_out_of_range(self):
        entry = {**SAMPLE_ENTRY, "fee_bps": 10_000}
        cfg = {"default_aggregators": [], "aggregators": {"LIFI": entry}}
        assert any("fee_bps" in e for e in validate_aggregator_config(cfg))

    def test_bad_router_address(self):
        entry = {**SAMPLE_ENTRY, "routers": {"56": "0x1234"}}
        cfg = {"default_aggregators": [], "aggregators": {"LIFI": entry}}
        assert validate_aggregator_config(cfg) == ["aggregators.LIFI.routers.56: invalid address"]


class TestValidateTimingValues:
    def test_non_positive_timeout(self):
        cfg = {"aggregator": {"request_timeout_seconds": 0, "expiry_seconds": 5}}
        assert validate_timing_config(cfg) == ["aggregator.request_timeout_seconds: must be positive"]


class TestValidateAllConfigs:
    def test_all_configs_valid(self):
        """Shipped config files should pass validation."""
        validate_all_configs()

    def test_raises_on_invalid(self):
        with patch("config.validate.get_config") as mock_cfg:
            mock_loader = MagicMock()
            mock_loader.get_app_config.return_value = {}
            mock_loader.get_timing_config.return_value = {"aggregator": {}}
            mock_loader.get_aggregator_config.return_value = {"aggregators": {}}
            mock_cfg.return_value = mock_loader

            with pytest.raises(ConfigValidationError, match="timing.json"):
                validate_all_configs()
