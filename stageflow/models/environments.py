"""Target environment profiles rendered into build/config.env."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EnvironmentProfile(BaseModel):
    """Settings written to config.env for one target environment."""

    app_env: str = Field(description="Environment name")
    api_url: str = Field(description="Base URL of the API for this environment")
    feature_flag: bool = Field(default=False)

    def render(self) -> str:
        return render_config_env(self)


KNOWN_PROFILES: dict[str, EnvironmentProfile] = {
    "dev": EnvironmentProfile(app_env="dev", api_url="https://api.dev.example.com", feature_flag=True),
    "staging": EnvironmentProfile(
        app_env="staging", api_url="https://api.staging.example.com", feature_flag=True
    ),
    "prod": EnvironmentProfile(app_env="prod", api_url="https://api.example.com", feature_flag=False),
}


def profile_for(env: str) -> EnvironmentProfile:
    """Look up a known profile, deriving one for any other environment."""
    if env in KNOWN_PROFILES:
        return KNOWN_PROFILES[env]
    return EnvironmentProfile(app_env=env, api_url=f"https://api.{env}.example.com", feature_flag=False)


def render_config_env(profile: EnvironmentProfile) -> str:
    lines = [
        f"APP_ENV={profile.app_env}",
        f"API_URL={profile.api_url}",
        f"FEATURE_FLAG={'true' if profile.feature_flag else 'false'}",
    ]
    return "\n".join(lines) + "\n"


def parse_config_env(text: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, ignoring blanks and comments."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip()
    return values
