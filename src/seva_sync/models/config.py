from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_core.core_schema import ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

DEFAULT_HOST = "github.com"


def load_env(env_file: str | Path | None = None) -> None:
	"""Load environment variables from an `.env` file if present."""
	env_path = Path(env_file) if env_file else Path(".env")
	if env_path.exists():
		load_dotenv(env_path)


def normalize_host(value: Any) -> str:
	"""Strip scheme and trailing slash; empty means github.com."""
	if value is None or str(value).strip() == "":
		return DEFAULT_HOST
	host = str(value).strip()
	for prefix in ("https://", "http://"):
		if host.startswith(prefix):
			host = host[len(prefix):]
	return host.rstrip("/")


class Config(BaseSettings):
	"""Runtime configuration loaded from environment variables."""

	model_config = SettingsConfigDict(env_prefix="", case_sensitive=False,
	                                  populate_by_name=True)

	github_token: str | None = Field(
	    default=None,
	    validation_alias=AliasChoices("GITHUB_TOKEN", "GH_TOKEN"),
	    description="Token for the organization being exported or written to",
	)
	hostname: str = Field(
	    DEFAULT_HOST,
	    validation_alias="GH_HOST",
	    description="GitHub or GitHub Enterprise Server hostname",
	)
	source_token: str | None = Field(
	    default=None,
	    validation_alias="SOURCE_GITHUB_TOKEN",
	    description="Token for the organization variables are copied from",
	)
	source_hostname: str = Field(
	    DEFAULT_HOST,
	    validation_alias="SOURCE_GH_HOST",
	    description="Hostname of the organization variables are copied from",
	)
	log_level: str = Field("info", validation_alias="LOG_LEVEL",
	                       description="Log level")
	secrets_page_size: int = Field(
	    100,
	    validation_alias="SECRETS_PAGE_SIZE",
	    description="per_page for secret and repository listings (max 100)",
	)
	variables_page_size: int = Field(
	    30,
	    validation_alias="VARIABLES_PAGE_SIZE",
	    description="per_page for variable listings (max 30)",
	)

	@field_validator("hostname", "source_hostname", mode="before")
	@classmethod
	def validate_hostname(cls, v: Any) -> str:
		return normalize_host(v)

	@field_validator("secrets_page_size", "variables_page_size")
	@classmethod
	def validate_page_size(cls, v: int, info: ValidationInfo) -> int:
		limit = 100 if info.field_name == "secrets_page_size" else 30
		if not 0 < v <= limit:
			raise ValueError(f"{info.field_name} must be between 1 and {limit}")
		return v

	@property
	def is_enterprise_server(self) -> bool:
		return self.hostname != DEFAULT_HOST

	def apply_overrides(self, params: Any) -> None:
		"""Apply CLI overrides from a params model onto this config.

		Only non-None fields are applied, preserving environment-based
		defaults for anything the user didn't explicitly set.

		Parameters:
			params: ExportParams or CreateParams.
		"""
		_OVERRIDES: list[tuple[str, str]] = [
			("token", "github_token"),
			("hostname", "hostname"),
			("source_token", "source_token"),
			("source_hostname", "source_hostname"),
		]
		for param_field, config_field in _OVERRIDES:
			value = getattr(params, param_field, None)
			if value is None:
				continue
			if config_field.endswith("hostname"):
				value = normalize_host(value)
			setattr(self, config_field, value)
		if getattr(params, "debug", False):
			self.log_level = "debug"


__all__ = ["Config", "load_env", "normalize_host", "DEFAULT_HOST"]
