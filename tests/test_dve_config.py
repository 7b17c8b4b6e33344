"""Tests for DVE configuration and environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from config.dve import DEFAULT_DVE_CONFIG, DVEConfig
from config.settings import Settings


class TestDVEConfig:
    def test_defaults(self) -> None:
        config = DVEConfig()
        assert config.initial_trust == 0.5
        assert config.trust_increment == 0.05
        assert config.trust_decrement == 0.1
        assert (config.min_trust, config.max_trust) == (0.1, 1.0)
        assert config.recency_half_life_h == 24
        assert config.max_age_h == 168
        assert config.max_distance_km == 2.0
        assert config.optimal_distance_km == 0.5
        assert config.min_reports_for_consensus == 1
        assert config.consensus_threshold == 0.6
        assert config.consensus_bonus == 0.2
        assert config.verification_threshold == 0.4
        assert config.auto_verify_threshold == 0.5
        assert config.manual_penalty == 0.1
        assert config.score_amplifier == 10.0

    def test_default_instance(self) -> None:
        assert DEFAULT_DVE_CONFIG == DVEConfig()

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_DVE_CONFIG.max_distance_km = 5.0

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DVEConfig(max_distance=3.0)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_trust": 0.8, "max_trust": 0.5},
            {"initial_trust": 0.05},
            {"optimal_distance_km": 2.0},
            {"recency_half_life_h": 0},
            {"min_reports_for_consensus": 0},
            {"verification_threshold": 1.5},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            DVEConfig(**overrides)

    def test_public_names(self) -> None:
        public = DVEConfig(max_distance_km=3.0).as_public_dict()
        assert public["MAX_DISTANCE_KM"] == 3.0
        assert public["INITIAL_TRUST_SCORE"] == 0.5
        assert public["TIME_DECAY_HALF_LIFE"] == 24
        assert public["MANUAL_LOCATION_PENALTY"] == 0.1
        assert len(public) == 16


class TestSettings:
    def test_nested_dve_override_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FUELSYNC_DVE__MAX_DISTANCE_KM", "3.5")
        monkeypatch.setenv("FUELSYNC_DVE__MIN_REPORTS_FOR_CONSENSUS", "2")
        settings = Settings(_env_file=None)
        assert settings.dve.max_distance_km == 3.5
        assert settings.dve.min_reports_for_consensus == 2
        assert settings.dve.verification_threshold == 0.4

    def test_prefixed_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FUELSYNC_ENV", "production")
        monkeypatch.setenv("FUELSYNC_GEOAPIFY_API_KEY", "abc")
        settings = Settings(_env_file=None)
        assert settings.is_production is True
        assert settings.geoapify_api_key == "abc"

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FUELSYNC_ENV", raising=False)
        settings = Settings(_env_file=None)
        assert settings.is_production is False
        assert settings.dve == DVEConfig()
