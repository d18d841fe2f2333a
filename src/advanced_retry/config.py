"""
Declarative retry configuration.

Describes a resolver chain and run options as pydantic models that can
be loaded from a dict, a YAML file, or a file named by the
``ADVANCED_RETRY_CONFIG`` environment variable.

Example document:

    overall_timeout_ms: 30000
    resolvers:
      - type: delayed
        max_retries: 3
        initial_delay_ms: 100
        max_delay_ms: 2000
        backoff_multiplier: 2
        filter:
          status_codes: [429, 503]
          keywords_any: [timeout]
          mode: any
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from advanced_retry.batch import execute_with_retry_all
from advanced_retry.errors import ConfigurationError
from advanced_retry.filters import (
    CompositeFilter,
    ErrorFilter,
    MatchMode,
    keyword_filter_all,
    keyword_filter_any,
    status_code_filter_any,
    status_code_filter_range,
)
from advanced_retry.resolvers import DelayedResolver, DelayPolicy
from advanced_retry.retry import RetryResult, execute_with_retry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from advanced_retry.cancel import CancelToken
    from advanced_retry.retry import Operation

CONFIG_ENV_VAR = "ADVANCED_RETRY_CONFIG"


class FilterSettings(BaseModel):
    """Filter gating a configured resolver."""

    model_config = ConfigDict(extra="forbid")

    status_codes: list[int] | None = Field(
        default=None, description="Match any of these status codes"
    )
    status_range: tuple[int, int] | None = Field(
        default=None, description="Match status codes in this inclusive range"
    )
    keywords_any: list[str] | None = Field(
        default=None, description="Match errors containing any keyword"
    )
    keywords_all: list[str] | None = Field(
        default=None, description="Match errors containing every keyword"
    )
    mode: MatchMode = Field(
        default=MatchMode.ANY, description="How the listed filters combine: all, any, none"
    )

    @field_validator("status_range")
    @classmethod
    def _check_range(cls, value: tuple[int, int] | None) -> tuple[int, int] | None:
        if value is not None and value[0] > value[1]:
            raise ValueError("status_range minimum must not exceed maximum")
        return value

    def build(self) -> ErrorFilter[Any] | None:
        """Build the filter, or None if nothing is configured."""
        filters: list[ErrorFilter[Any]] = []
        if self.status_codes is not None:
            filters.append(status_code_filter_any(self.status_codes))
        if self.status_range is not None:
            filters.append(status_code_filter_range(*self.status_range))
        if self.keywords_any is not None:
            filters.append(keyword_filter_any(self.keywords_any))
        if self.keywords_all is not None:
            filters.append(keyword_filter_all(self.keywords_all))

        if not filters:
            return None
        if len(filters) == 1 and self.mode != MatchMode.NONE:
            return filters[0]
        return CompositeFilter(filters, self.mode)


class DelayedResolverSettings(BaseModel):
    """A delayed resolver entry in the chain."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["delayed"] = Field(default="delayed", description="Resolver type")
    max_retries: int = Field(ge=0, description="Retries granted by this resolver")
    initial_delay_ms: float = Field(default=0, description="Base delay in milliseconds")
    max_delay_ms: float | None = Field(
        default=None, ge=0, description="Upper bound for the delay in milliseconds"
    )
    backoff_multiplier: float = Field(default=1.0, description="Delay multiplier")
    filter: FilterSettings | None = Field(default=None, description="Errors this resolver handles")

    def build(self) -> DelayedResolver[Any]:
        """Build the resolver."""
        policy = DelayPolicy(
            max_retries=self.max_retries,
            initial_delay_ms=self.initial_delay_ms,
            max_delay_ms=self.max_delay_ms,
            backoff_multiplier=self.backoff_multiplier,
        )
        return DelayedResolver(policy, self.filter.build() if self.filter else None)


class RetrySettings(BaseModel):
    """Run options and resolver chain.

    Example:
        >>> settings = RetrySettings.from_yaml("retry.yaml")
        >>> result = await settings.run(fetch_profile)
    """

    model_config = ConfigDict(extra="forbid")

    overall_timeout_ms: float | None = Field(
        default=None, ge=0, description="Time budget for a whole run in milliseconds, 0 for none"
    )
    throw_on_unrecovered_error: bool = Field(
        default=False, description="Raise the final error instead of returning it"
    )
    resolvers: list[DelayedResolverSettings] = Field(
        default_factory=list, description="Resolver chain, consulted in order"
    )

    def build_resolvers(self) -> list[DelayedResolver[Any]]:
        """Build the resolver chain."""
        return [entry.build() for entry in self.resolvers]

    async def run(
        self,
        operation: Operation[Any],
        *,
        cancel_token: CancelToken | None = None,
    ) -> RetryResult[Any]:
        """Execute one operation with the configured options."""
        return await execute_with_retry(
            operation,
            self.build_resolvers(),
            throw_on_unrecovered_error=self.throw_on_unrecovered_error,
            overall_timeout_ms=self.overall_timeout_ms,
            cancel_token=cancel_token,
        )

    async def run_all(
        self,
        operations: Sequence[Operation[Any]],
        *,
        cancel_token: CancelToken | None = None,
    ) -> list[RetryResult[Any]]:
        """Execute several operations concurrently with the configured options."""
        return await execute_with_retry_all(
            operations,
            self.build_resolvers(),
            overall_timeout_ms=self.overall_timeout_ms,
            cancel_token=cancel_token,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: str | None = None) -> RetrySettings:
        """Validate settings from a mapping.

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid retry configuration: {e}", config_path=source
            ) from e

    @classmethod
    def from_yaml(cls, path: str | Path) -> RetrySettings:
        """Load settings from a YAML file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}", config_path=str(path)
            )
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration: {e}", config_path=str(path)
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration document must be a mapping", config_path=str(path)
            )
        return cls.from_dict(data, source=str(path))

    @classmethod
    def from_env(cls, env_var: str = CONFIG_ENV_VAR) -> RetrySettings:
        """Load settings from the file named by ``env_var``.

        Returns default settings (no resolvers, no timeout) when the
        variable is unset or empty.
        """
        path = os.getenv(env_var)
        if not path:
            return cls()
        return cls.from_yaml(path)
