"""Runtime configuration for the FormBuilder core."""

import os
import uuid
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BuilderConfig:
    """Tunable settings for id generation, field defaults and submission storage.

    Attributes:
        field_id_prefix: Prefix for generated field ids
        option_id_prefix: Prefix for generated option ids
        form_id_prefix: Prefix for published form ids
        event_id_prefix: Prefix for audit event ids
        id_hex_length: Number of uuid4 hex characters following the prefix
        textarea_default_rows: Rows given to a freshly created textarea
        textarea_min_rows: Lower bound enforced on textarea rows
        textarea_max_rows: Upper bound enforced on textarea rows
        submissions_dir: Directory used by the JSON file submission endpoint

    Examples:
        >>> config = BuilderConfig(field_id_prefix="f_")
        >>> config.textarea_default_rows
        3
    """
    field_id_prefix: str = "fld_"
    option_id_prefix: str = "opt_"
    form_id_prefix: str = "form_"
    event_id_prefix: str = "evt_"
    id_hex_length: int = 16
    textarea_default_rows: int = 3
    textarea_min_rows: int = 2
    textarea_max_rows: int = 10
    submissions_dir: str = "data"

    def __post_init__(self):
        if not 1 <= self.id_hex_length <= 32:
            raise ValueError(f"id_hex_length must be between 1 and 32, got {self.id_hex_length}")
        if self.textarea_min_rows > self.textarea_max_rows:
            raise ValueError(
                f"textarea_min_rows ({self.textarea_min_rows}) exceeds "
                f"textarea_max_rows ({self.textarea_max_rows})"
            )
        if not self.textarea_min_rows <= self.textarea_default_rows <= self.textarea_max_rows:
            raise ValueError(
                f"textarea_default_rows ({self.textarea_default_rows}) is outside "
                f"[{self.textarea_min_rows}, {self.textarea_max_rows}]"
            )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "BuilderConfig":
        """Build a config from ``FORMBUILDER_*`` environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            New BuilderConfig instance

        Raises:
            ValueError: If a numeric variable does not parse or bounds are inconsistent
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            field_id_prefix=env.get("FORMBUILDER_FIELD_ID_PREFIX", defaults.field_id_prefix),
            option_id_prefix=env.get("FORMBUILDER_OPTION_ID_PREFIX", defaults.option_id_prefix),
            form_id_prefix=env.get("FORMBUILDER_FORM_ID_PREFIX", defaults.form_id_prefix),
            event_id_prefix=env.get("FORMBUILDER_EVENT_ID_PREFIX", defaults.event_id_prefix),
            id_hex_length=int(env.get("FORMBUILDER_ID_HEX_LENGTH", defaults.id_hex_length)),
            textarea_default_rows=int(
                env.get("FORMBUILDER_TEXTAREA_DEFAULT_ROWS", defaults.textarea_default_rows)
            ),
            textarea_min_rows=int(env.get("FORMBUILDER_TEXTAREA_MIN_ROWS", defaults.textarea_min_rows)),
            textarea_max_rows=int(env.get("FORMBUILDER_TEXTAREA_MAX_ROWS", defaults.textarea_max_rows)),
            submissions_dir=env.get("FORMBUILDER_SUBMISSIONS_DIR", defaults.submissions_dir),
        )

    def make_id(self, prefix: str) -> str:
        """Generate a fresh identifier with the given prefix."""
        return f"{prefix}{uuid.uuid4().hex[:self.id_hex_length]}"


DEFAULT_CONFIG = BuilderConfig()


__all__ = [
    "BuilderConfig",
    "DEFAULT_CONFIG",
]
