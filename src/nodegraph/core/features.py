"""
Pydantic models for build features.

Accepted in Python (snake_case) and in nodegraph.yaml (camelCase) alike:

    features:
      subscriptions: true
      populatedBy:
        callbacks: [slug]
      excludeDeprecatedFields:
        implicitEqualFilters: true
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExcludeDeprecatedFields(BaseModel):
    """Drop selected families of deprecated fields from the generated schema."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    implicit_equal_filters: bool = Field(False, alias="implicitEqualFilters")
    implicit_set: bool = Field(False, alias="implicitSet")
    id_aggregations: bool = Field(False, alias="idAggregations")
    typename_in: bool = Field(False, alias="typename_IN")
    options_argument: bool = Field(False, alias="deprecatedOptionsArgument")
    directed_argument: bool = Field(False, alias="directedArgument")
    overwrite: bool = Field(False, alias="overwrite")

    def excludes(self, flag: str) -> bool:
        return bool(getattr(self, flag))


class PopulatedByFeature(BaseModel):
    """Callbacks an external collaborator can run for @populatedBy fields."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    callbacks: list[str] = Field(default_factory=list)


class Features(BaseModel):
    """Build-time feature toggles."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    subscriptions: bool = False
    exclude_deprecated_fields: ExcludeDeprecatedFields = Field(
        default_factory=ExcludeDeprecatedFields,
        alias="excludeDeprecatedFields",
    )
    populated_by: PopulatedByFeature = Field(
        default_factory=PopulatedByFeature,
        alias="populatedBy",
    )
