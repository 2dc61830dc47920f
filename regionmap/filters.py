"""
regionmap.filters — Predicate filter chain over the region catalog.

Each supplied constraint becomes one boolean predicate; a region survives
only if every predicate holds (logical AND). Absent constraints add no
predicate. The output order is the input order and carries no meaning:
ranking is a separate step.

Tier and edition are independent predicates. With both supplied, a region
qualifies when SOME vault offering has the tier and SOME (possibly
different) offering has the edition.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from regionmap.catalog import Region
from regionmap.validation import FilterQuery

Predicate = Callable[[Region], bool]


def provider_is(provider: str) -> Predicate:
    def predicate(region: Region) -> bool:
        return region.provider == provider
    return predicate


def offers_service(service_id: str) -> Predicate:
    def predicate(region: Region) -> bool:
        return region.has_service(service_id)
    return predicate


def vault_tier_is(tier: str) -> Predicate:
    def predicate(region: Region) -> bool:
        return any(o.tier == tier for o in region.vault_offerings())
    return predicate


def vault_edition_is(edition: str) -> Predicate:
    def predicate(region: Region) -> bool:
        return any(o.edition == edition for o in region.vault_offerings())
    return predicate


def name_or_alias_contains(text: str) -> Predicate:
    """Case-insensitive substring match on the region name or any alias."""
    needle = text.lower()

    def predicate(region: Region) -> bool:
        if needle in region.name.lower():
            return True
        return any(needle in alias.lower() for alias in region.aliases or ())
    return predicate


def build_predicates(query: FilterQuery, country: str | None = None) -> list[Predicate]:
    """Translate a validated query into its predicate chain.

    tier/edition only ever reach here together with service=vdc_vault; the
    validator rejects any other combination.
    """
    predicates: list[Predicate] = []
    if query.provider is not None:
        predicates.append(provider_is(query.provider))
    if country is not None:
        predicates.append(name_or_alias_contains(country))
    if query.service is not None:
        predicates.append(offers_service(query.service))
    if query.tier is not None:
        predicates.append(vault_tier_is(query.tier))
    if query.edition is not None:
        predicates.append(vault_edition_is(query.edition))
    return predicates


def apply_predicates(regions: Iterable[Region], predicates: list[Predicate]) -> list[Region]:
    return [r for r in regions if all(p(r) for p in predicates)]
