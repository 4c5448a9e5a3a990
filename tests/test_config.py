"""Tests for runtime settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from pytest_check import check

from expertkit.config import DEFAULT_PRUNING_Z, ExpertKitSettings


class TestExpertKitSettings:
    """Tests for ExpertKitSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without overrides, pruning is on with the 25% confidence quantile.

        Args:
            monkeypatch (pytest.MonkeyPatch): Pytest monkeypatch fixture.
        """
        # Arrange
        for name in ["PRUNE", "PRUNING_Z", "SESSION_TTL_SECONDS", "SESSION_LOCK_TIMEOUT"]:
            monkeypatch.delenv(f"EXPERTKIT_{name}", raising=False)

        # Act
        settings = ExpertKitSettings()

        # Assert
        with check:
            assert settings.prune is True
        with check:
            assert settings.pruning_z == DEFAULT_PRUNING_Z == 0.6745
        with check:
            assert settings.session_ttl_seconds == 3600.0
        with check:
            assert settings.session_lock_timeout is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """`EXPERTKIT_*` variables override the defaults.

        Args:
            monkeypatch (pytest.MonkeyPatch): Pytest monkeypatch fixture.
        """
        # Arrange
        monkeypatch.setenv("EXPERTKIT_PRUNE", "false")
        monkeypatch.setenv("EXPERTKIT_PRUNING_Z", "1.15")
        monkeypatch.setenv("EXPERTKIT_SESSION_LOCK_TIMEOUT", "0.5")

        # Act
        settings = ExpertKitSettings()

        # Assert
        with check:
            assert settings.prune is False
        with check:
            assert settings.pruning_z == 1.15
        with check:
            assert settings.session_lock_timeout == 0.5

    def test_keyword_arguments_win_over_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Explicit values take precedence over the environment.

        Args:
            monkeypatch (pytest.MonkeyPatch): Pytest monkeypatch fixture.
        """
        # Arrange
        monkeypatch.setenv("EXPERTKIT_PRUNE", "false")

        # Act / Assert
        assert ExpertKitSettings(prune=True).prune is True

    @pytest.mark.parametrize(
        "overrides",
        [{"pruning_z": 0.0}, {"pruning_z": -1.0}, {"session_ttl_seconds": 0.0}, {"session_lock_timeout": -0.1}],
        ids=["zero-z", "negative-z", "zero-ttl", "negative-timeout"],
    )
    def test_non_positive_values_rejected(self, overrides: dict[str, float]) -> None:
        """Settings that must be positive reject zero and negative values.

        Args:
            overrides (dict[str, float]): The invalid settings.
        """
        # Arrange / Act / Assert
        with pytest.raises(ValidationError):
            ExpertKitSettings(**overrides)  # type: ignore[arg-type]
