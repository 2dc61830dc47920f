"""
regionmap.validation — Declarative query-parameter validation.

Every query parameter accepted by the API is described once, as a rule
object in a constraint table. One generic validator walks a table in order
and stops at the first violation (fail-fast: exactly one error per call).
Endpoints differ only in which rules their table lists, so the listing and
nearest-region surfaces share the same provider/service/tier/edition/limit
semantics by construction.

Nearest-region table order (first failure wins):
    1. lat, lng     required, finite decimal, in range
    2. provider     AWS | Azure (case-sensitive, no trimming)
    3. service      vdc_vault | vdc_m365 | vdc_entra_id | vdc_salesforce | vdc_azure_backup
    4. tier         Core | Non-Core;  edition  Foundation | Advanced
    5. cross-field  tier/edition only with service=vdc_vault
    6. limit        non-negative integer, default 5, capped at 20, 0 = unlimited

A successful walk yields a frozen pydantic request model. A failed walk
raises InvalidParameterError, whose to_dict() is the 400 response body.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from pydantic import BaseModel, Field

from regionmap.constants import (
    COMPARE_MAX_REGIONS,
    COMPARE_MIN_REGIONS,
    EDITIONS,
    INVALID_PARAMETER,
    LAT_RANGE,
    LISTING_DEFAULT_LIMIT,
    LNG_RANGE,
    MAX_LIMIT,
    NEAREST_DEFAULT_LIMIT,
    PROVIDERS,
    SERVICE_IDS,
    TIERS,
    VAULT_SERVICE,
)

RawParams = Mapping[str, str]

# Plain ASCII decimal literal: optional sign, digits with optional fraction, optional exponent.
# Rejects nan/inf, hex, underscore-grouped and non-ASCII digits that float() would accept.
# Matched with fullmatch so a trailing newline is not tolerated.
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_DIGITS_RE = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Structured rejection
# ---------------------------------------------------------------------------

class InvalidParameterError(Exception):
    """A query parameter violated its constraint. Maps to HTTP 400."""

    def __init__(
        self,
        parameter: str,
        value: str | None,
        message: str,
        *,
        allowed_values: Sequence[str] | None = None,
        error: str = "Invalid parameter",
    ) -> None:
        super().__init__(message)
        self.parameter = parameter
        self.value = value
        self.message = message
        self.allowed_values = list(allowed_values) if allowed_values is not None else None
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.error,
            "code": INVALID_PARAMETER,
            "message": self.message,
            "parameter": self.parameter,
            "value": self.value,
        }
        if self.allowed_values is not None:
            body["allowedValues"] = self.allowed_values
        return body


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

class Rule(Protocol):
    def apply(self, raw: RawParams, values: dict[str, Any]) -> None: ...


def _fmt(bound: float) -> str:
    return f"{bound:g}"


@dataclass(frozen=True)
class CoordinateRule:
    """Required decimal number within [minimum, maximum]."""

    param: str
    label: str
    minimum: float
    maximum: float

    def _range(self) -> str:
        return f"between {_fmt(self.minimum)} and {_fmt(self.maximum)}"

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        value = raw.get(self.param)
        if value is None or value == "":
            raise InvalidParameterError(
                self.param,
                None,
                f"{self.param} is required: {self.label} in decimal degrees, {self._range()}.",
            )
        if not _DECIMAL_RE.fullmatch(value):
            raise InvalidParameterError(
                self.param,
                value,
                f"{self.param} must be a finite number {self._range()} "
                f"({self.label} in decimal degrees), got '{value}'.",
            )
        number = float(value)
        if not math.isfinite(number):
            raise InvalidParameterError(
                self.param,
                value,
                f"{self.param} must be a finite number {self._range()}, got '{value}'.",
            )
        if not (self.minimum <= number <= self.maximum):
            raise InvalidParameterError(
                self.param,
                value,
                f"{self.param} must be {self._range()} ({self.label}), got {value}.",
            )
        values[self.param] = number


@dataclass(frozen=True)
class EnumRule:
    """Optional exact-match value from a fixed set."""

    param: str
    allowed: tuple[str, ...]

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        value = raw.get(self.param)
        if value is None:
            values[self.param] = None
            return
        if value not in self.allowed:
            raise InvalidParameterError(
                self.param,
                value,
                f"Invalid {self.param} '{value}'. Must be one of: {', '.join(self.allowed)}.",
                allowed_values=self.allowed,
            )
        values[self.param] = value


@dataclass(frozen=True)
class TextRule:
    """Optional free text. Trimmed; blank means absent."""

    param: str

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        value = (raw.get(self.param) or "").strip()
        values[self.param] = value or None


@dataclass(frozen=True)
class RequiresValueRule:
    """Cross-field rule: ``params`` may only be given when ``requires`` == ``value``.

    Rejecting instead of ignoring keeps automated callers from running a
    filter that silently does nothing.
    """

    params: tuple[str, ...]
    requires: str
    value: str

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        if values.get(self.requires) == self.value:
            return
        for param in self.params:
            supplied = values.get(param)
            if supplied is not None:
                raise InvalidParameterError(
                    param,
                    supplied,
                    f"{' and '.join(self.params)} parameters are only valid with "
                    f"{self.requires}={self.value}.",
                    error="Invalid parameter combination",
                )


@dataclass(frozen=True)
class LimitRule:
    """Non-negative integer with a default; values above ``maximum`` are capped.

    The cap is reported through ``requested_limit`` so the response layer
    can signal it. 0 is the unlimited sentinel and is never capped.
    """

    param: str
    default: int
    maximum: int

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        value = raw.get(self.param)
        values["requested_limit"] = None
        if value is None:
            values[self.param] = self.default
            return
        if not _DIGITS_RE.fullmatch(value):
            raise InvalidParameterError(
                self.param,
                value,
                f"{self.param} must be a non-negative integer "
                f"(0 = unlimited, maximum {self.maximum}), got '{value}'.",
            )
        number = int(value)
        if number > self.maximum:
            values["requested_limit"] = number
            number = self.maximum
        values[self.param] = number


@dataclass(frozen=True)
class IdListRule:
    """Required comma-separated id list; trimmed, de-duplicated, bounded."""

    param: str
    minimum: int
    maximum: int

    def apply(self, raw: RawParams, values: dict[str, Any]) -> None:
        value = raw.get(self.param)
        ids: list[str] = []
        for part in (value or "").split(","):
            part = part.strip()
            if part and part not in ids:
                ids.append(part)
        if len(ids) < self.minimum:
            raise InvalidParameterError(
                self.param,
                value,
                f"At least {self.minimum} region IDs are required for comparison",
            )
        if len(ids) > self.maximum:
            raise InvalidParameterError(
                self.param,
                value,
                f"Maximum {self.maximum} region IDs allowed for comparison",
            )
        values[self.param] = ids


# ---------------------------------------------------------------------------
# Constraint tables
# ---------------------------------------------------------------------------

LAT_RULE = CoordinateRule("lat", "latitude", *LAT_RANGE)
LNG_RULE = CoordinateRule("lng", "longitude", *LNG_RANGE)
PROVIDER_RULE = EnumRule("provider", PROVIDERS)
SERVICE_RULE = EnumRule("service", SERVICE_IDS)
TIER_RULE = EnumRule("tier", TIERS)
EDITION_RULE = EnumRule("edition", EDITIONS)
COUNTRY_RULE = TextRule("country")
VAULT_ONLY_RULE = RequiresValueRule(("tier", "edition"), "service", VAULT_SERVICE)

NEAREST_RULES: tuple[Rule, ...] = (
    LAT_RULE,
    LNG_RULE,
    PROVIDER_RULE,
    SERVICE_RULE,
    TIER_RULE,
    EDITION_RULE,
    VAULT_ONLY_RULE,
    LimitRule("limit", NEAREST_DEFAULT_LIMIT, MAX_LIMIT),
)

LISTING_RULES: tuple[Rule, ...] = (
    PROVIDER_RULE,
    COUNTRY_RULE,
    SERVICE_RULE,
    TIER_RULE,
    EDITION_RULE,
    VAULT_ONLY_RULE,
    LimitRule("limit", LISTING_DEFAULT_LIMIT, MAX_LIMIT),
)

COMPARE_RULES: tuple[Rule, ...] = (
    IdListRule("ids", COMPARE_MIN_REGIONS, COMPARE_MAX_REGIONS),
)


def validate_params(raw: RawParams, rules: Sequence[Rule]) -> dict[str, Any]:
    """Walk ``rules`` in order. Returns normalized values or raises on the first violation."""
    values: dict[str, Any] = {}
    for rule in rules:
        rule.apply(raw, values)
    return values


# ---------------------------------------------------------------------------
# Typed requests
# ---------------------------------------------------------------------------

Provider = Literal["AWS", "Azure"]
ServiceId = Literal["vdc_vault", "vdc_m365", "vdc_entra_id", "vdc_salesforce", "vdc_azure_backup"]
Tier = Literal["Core", "Non-Core"]
Edition = Literal["Foundation", "Advanced"]


class FilterQuery(BaseModel):
    """Constraints shared by every filtering endpoint."""

    model_config = {"frozen": True, "extra": "forbid"}

    provider: Optional[Provider] = None
    service: Optional[ServiceId] = None
    tier: Optional[Tier] = None
    edition: Optional[Edition] = None
    limit: int = Field(..., ge=0, le=MAX_LIMIT)
    requested_limit: Optional[int] = Field(
        None,
        description="Limit as sent by the caller, set only when it was capped.",
    )

    @property
    def limit_capped(self) -> bool:
        return self.requested_limit is not None


class NearestQuery(FilterQuery):
    lat: float = Field(..., ge=LAT_RANGE[0], le=LAT_RANGE[1])
    lng: float = Field(..., ge=LNG_RANGE[0], le=LNG_RANGE[1])
    limit: int = Field(NEAREST_DEFAULT_LIMIT, ge=0, le=MAX_LIMIT)

    def echo(self) -> dict[str, Any]:
        """Normalized query as echoed in the response (effective limit)."""
        return {
            "lat": self.lat,
            "lng": self.lng,
            "provider": self.provider,
            "service": self.service,
            "tier": self.tier,
            "edition": self.edition,
            "limit": self.limit,
        }


class RegionsQuery(FilterQuery):
    country: Optional[str] = None
    limit: int = Field(LISTING_DEFAULT_LIMIT, ge=0, le=MAX_LIMIT)

    def echo(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "service": self.service,
            "tier": self.tier,
            "edition": self.edition,
            "country": self.country,
        }


def parse_nearest_query(raw: RawParams) -> NearestQuery:
    return NearestQuery(**validate_params(raw, NEAREST_RULES))


def parse_regions_query(raw: RawParams) -> RegionsQuery:
    return RegionsQuery(**validate_params(raw, LISTING_RULES))


def parse_compare_ids(raw: RawParams) -> list[str]:
    return validate_params(raw, COMPARE_RULES)["ids"]
