"""
Run parameters.

The three values a user supplies when triggering a run. They mirror the
`parameters { ... }` block of a declarative pipeline.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from ..core.config import parse_bool

_ENV_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class PipelineParameters(BaseModel):
    """Parameters for a single pipeline run."""

    name: str = Field(default="World", description="Who to greet in the Init stage")
    do_build: bool = Field(default=True, description="Run the Build stage")
    target_env: str = Field(default="dev", description="Target environment (dev, staging, prod, ...)")

    model_config = {"frozen": True}

    @field_validator("target_env")
    @classmethod
    def _check_target_env(cls, value: str) -> str:
        value = value.strip()
        if not _ENV_NAME.match(value):
            raise ValueError(
                "target_env must start with a letter or digit and contain only "
                "letters, digits, '.', '_' or '-'"
            )
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> PipelineParameters:
        """Read NAME, DO_BUILD and TARGET_ENV from an environment mapping."""
        values: dict[str, object] = {}
        if "NAME" in environ:
            values["name"] = environ["NAME"]
        if "DO_BUILD" in environ:
            values["do_build"] = parse_bool(environ["DO_BUILD"], "DO_BUILD")
        if environ.get("TARGET_ENV"):
            values["target_env"] = environ["TARGET_ENV"]
        return cls(**values)

    @property
    def app_env(self) -> str:
        """APP_ENV mirrors TARGET_ENV."""
        return self.target_env

    def as_step_env(self) -> dict[str, str]:
        """Environment variables exposed to shell steps."""
        return {
            "NAME": self.name,
            "DO_BUILD": "true" if self.do_build else "false",
            "TARGET_ENV": self.target_env,
            "APP_ENV": self.app_env,
        }
