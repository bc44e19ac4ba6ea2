"""EngineConfig validation and override tests."""

import pytest
from pydantic import ValidationError

from inventory_intel.core.config import DEFAULT_CONFIG, EngineConfig, resolve_config
from inventory_intel.core.models import AllocationMethod


class TestEngineConfig:

    def test_defaults(self):
        config = EngineConfig()
        assert config.lead_time_days == 7
        assert config.service_level_z == 1.65
        assert config.class_a_boundary_percent == 20
        assert config.class_b_boundary_percent == 50
        assert config.allocation_method == AllocationMethod.FIFO
        assert config.reconciliation_tolerance == 0

    def test_frozen(self):
        with pytest.raises(ValidationError):
            DEFAULT_CONFIG.lead_time_days = 3

    def test_boundaries_must_increase(self):
        with pytest.raises(ValidationError):
            EngineConfig(class_a_boundary_percent=60, class_b_boundary_percent=50)

    def test_lead_time_positive(self):
        with pytest.raises(ValidationError):
            EngineConfig(lead_time_days=0)

    def test_movement_thresholds_ascending(self):
        with pytest.raises(ValidationError):
            EngineConfig(movement_thresholds=(60, 15, 90, 180))

    def test_method_from_string(self):
        assert EngineConfig(allocation_method="FEFO").allocation_method == AllocationMethod.FEFO


class TestOverrides:

    def test_with_overrides_returns_copy(self):
        changed = DEFAULT_CONFIG.with_overrides(lead_time_days=14)
        assert changed.lead_time_days == 14
        assert DEFAULT_CONFIG.lead_time_days == 7

    def test_overrides_are_validated(self):
        with pytest.raises(ValidationError):
            DEFAULT_CONFIG.with_overrides(class_a_boundary_percent=80)

    def test_resolve_config(self):
        assert resolve_config() is DEFAULT_CONFIG
        assert resolve_config(lead_time_days=None) is DEFAULT_CONFIG
        assert resolve_config(EngineConfig(target_days=10), lead_time_days=3).target_days == 10
        assert resolve_config(lead_time_days=3).lead_time_days == 3
