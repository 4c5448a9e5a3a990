"""Runtime settings for training and consultation."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PRUNING_Z: float = 0.6745  # Normal quantile for a 25% confidence factor.


class ExpertKitSettings(BaseSettings):
    """Settings read from `EXPERTKIT_*` environment variables or a `.env` file.

    Attributes:
        prune (bool): Whether `train` prunes the tree after building it.
        pruning_z (float): Normal quantile used by the pessimistic error
            estimate. The default corresponds to a 25% confidence factor.
        session_ttl_seconds (float | None): Idle time after which a stored
            consultation session expires. `None` disables expiry.
        session_lock_timeout (float | None): Seconds an answer waits for
            another in-flight answer on the same session before it is
            rejected. `None` waits indefinitely.

    Examples:
        >>> settings = ExpertKitSettings(prune=False)
        >>> settings.pruning_z
        0.6745
    """

    model_config = SettingsConfigDict(
        env_prefix="EXPERTKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    prune: bool = Field(default=True, description="Prune the tree after building it.")
    pruning_z: float = Field(
        default=DEFAULT_PRUNING_Z,
        gt=0.0,
        description="Normal quantile for the pessimistic error upper bound.",
    )
    session_ttl_seconds: float | None = Field(
        default=3600.0,
        gt=0.0,
        description="Idle seconds before a stored session expires; None disables expiry.",
    )
    session_lock_timeout: float | None = Field(
        default=None,
        gt=0.0,
        description="Seconds to wait for a busy session before rejecting an answer; None waits indefinitely.",
    )
