"""Schema context passed to every diagnostic."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SCHEMA_NAME = "public"
DEFAULT_BLOAT_PERCENTAGE_THRESHOLD = 10.0
DEFAULT_REMAINING_PERCENTAGE_THRESHOLD = 10.0


def valid_percent(value: float, argument_name: str) -> float:
    if not 0.0 <= float(value) <= 100.0:
        raise ValueError(f"{argument_name} should be in the range from 0.0 to 100.0 inclusive")
    return float(value)


@dataclass(frozen=True)
class SchemaContext:
    """Target schema and thresholds.

    Bound as query parameters and used to qualify returned object names.
    """

    schema_name: str = DEFAULT_SCHEMA_NAME
    bloat_percentage_threshold: float = DEFAULT_BLOAT_PERCENTAGE_THRESHOLD
    remaining_percentage_threshold: float = DEFAULT_REMAINING_PERCENTAGE_THRESHOLD

    def __post_init__(self):
        if not isinstance(self.schema_name, str) or not self.schema_name.strip():
            raise ValueError("schema_name cannot be blank")
        object.__setattr__(self, "schema_name", self.schema_name.strip().lower())
        object.__setattr__(
            self,
            "bloat_percentage_threshold",
            valid_percent(self.bloat_percentage_threshold, "bloat_percentage_threshold"),
        )
        object.__setattr__(
            self,
            "remaining_percentage_threshold",
            valid_percent(self.remaining_percentage_threshold, "remaining_percentage_threshold"),
        )

    @property
    def is_default_schema(self) -> bool:
        return self.schema_name == DEFAULT_SCHEMA_NAME

    def enrich_with_schema(self, object_name: str) -> str:
        """Prefix ``object_name`` with the schema unless it is the default one."""
        if not object_name or not object_name.strip():
            raise ValueError("object_name cannot be blank")
        if self.is_default_schema:
            return object_name
        prefix = self.schema_name + "."
        if object_name.lower().startswith(prefix):
            return object_name
        return prefix + object_name

    def query_params(self) -> dict:
        return {
            "schema_name": self.schema_name,
            "bloat_percentage_threshold": self.bloat_percentage_threshold,
            "remaining_percentage_threshold": self.remaining_percentage_threshold,
        }

    @classmethod
    def of_default(cls) -> SchemaContext:
        return cls()
