# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownMemberType=false, reportUnknownVariableType=false
"""Configuration validation using Pydantic schemas.

This module validates nanogit configuration dictionaries with the frozen
Pydantic section models, plus strict variants that reject unknown keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from nanogit.config._models._cache import CacheConfig
from nanogit.config._models._logging import LoggingConfig
from nanogit.exceptions import ConfigValidationError

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "cache.max_entries").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        source: Name of the source where the issue was found, or None.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"]


# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------


class ConfigSchema(BaseModel):
    """Pydantic schema for root configuration (lenient mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    logging: LoggingConfig = LoggingConfig()
    cache: CacheConfig = CacheConfig()


class LoggingConfigStrict(LoggingConfig):
    """Pydantic schema for logging configuration section (strict mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")


class CacheConfigStrict(CacheConfig):
    """Pydantic schema for cache configuration section (strict mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")


class ConfigSchemaStrict(BaseModel):
    """Pydantic schema for root configuration (strict mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    logging: LoggingConfigStrict = LoggingConfigStrict()
    cache: CacheConfigStrict = CacheConfigStrict()


# -----------------------------------------------------------------------------
# Validation Functions
# -----------------------------------------------------------------------------


def _pydantic_error_to_issue(
    error: ErrorDetails,
    source: str | None,
) -> ValidationIssue:
    loc = error.get("loc", ())
    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "ge" in ctx:
            expected = f">= {ctx['ge']}"
    return ValidationIssue(
        key=".".join(str(part) for part in loc),
        message=str(error.get("msg", "Validation error")),
        expected=expected,
        actual=error.get("input"),
        source=source,
        severity="error",
    )


def validate_config(
    config: dict[str, Any],
    *,
    strict: bool = False,
) -> list[ValidationIssue]:
    """Validate a merged configuration dictionary.

    Args:
        config: The merged configuration dictionary to validate.
        strict: If True, unknown keys are errors. If False, they are ignored.

    Returns:
        List of ValidationIssue objects. Empty list indicates valid config.
    """
    schema_class = ConfigSchemaStrict if strict else ConfigSchema
    try:
        _ = schema_class.model_validate(config)
    except ValidationError as e:
        return [_pydantic_error_to_issue(err, source=None) for err in e.errors()]
    else:
        return []


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first error-severity issue.

    Args:
        issues: List of ValidationIssue objects to check.
        source: Optional source string to use in the exception.
            If not provided, uses the source from the first error.

    Raises:
        ConfigValidationError: If any issues have severity="error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}'"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source or issue.source,
        )
