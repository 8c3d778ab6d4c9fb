"""Provider Catalog - Configuration-Driven LLM Provider Metadata.

Provides type-safe, validated metadata for every model the command router
may call. The catalog is loaded from JSON configuration and provides O(1)
lookups for model variants and their static performance figures.

Architecture:
    ProviderCatalog: Root container, loaded from provider_catalog.json
    ├─ VendorCatalog: Per-vendor metadata (Anthropic, Groq, OpenAI)
    │  └─ ModelVariant: Specific model versions with tier, latency and token budget
    ├─ ProviderSpec: Normalized reference (vendor + variant_id)
    └─ ProviderRoute: The fast/capable pair a deployment routes between

Key Features:
    - O(1) Model Lookup: Uses computed dicts, not linear search
    - Validation: Pydantic ensures no duplicate IDs, required fields present
    - Static Figures: average latency and max output tokens feed routing and dashboards
    - Flexible Identifiers: Support aliases (e.g., "claude-3.5-sonnet" → full ID)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, RootModel, computed_field, model_validator

from .domain_type import AIModelVendor

DEFAULT_CATALOG_PATH = Path(__file__).with_name("provider_catalog.json")

# ---------------------------------------------------------------------------
# Catalog Definitions (loaded from configuration)
# ---------------------------------------------------------------------------


class ModelVariant(BaseModel):
    """Specific LLM Model Version within a Vendor's Catalog.

    Attributes:
        id: Canonical identifier (e.g., "llama-3.3-70b-versatile")
        api_id: Vendor's API string (usually same as id)
        family: Model family for grouping (e.g., "llama")
        tier_class: Which command class this model is suited to serve
        avg_latency_ms: Typical end-to-end latency of a tool-calling request
        max_output_tokens: Output budget sent with every request
        aliases: Alternative names that resolve to this variant
        notes: Human-readable description/usage notes

    Tier Classes:
        fast: Low-latency model for single primitive operations
        capable: High-capability model for multi-step and compositional commands
    """

    id: str
    api_id: str
    family: str
    tier_class: Literal["fast", "capable"] = "capable"
    avg_latency_ms: int = Field(gt=0)
    max_output_tokens: int = Field(default=1024, gt=0)
    aliases: tuple[str, ...] = ()
    notes: str | None = None

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def identifiers(self) -> frozenset[str]:
        """All valid lookup keys for this variant: {id, api_id, *aliases}."""
        return frozenset({self.id, self.api_id, *self.aliases})


class VendorCatalog(BaseModel):
    """Per-Vendor Model Catalog with Metadata.

    Attributes:
        vendor: Vendor identifier enum value
        api_key_env: Environment variable that holds the vendor API key
        api_key_prefix: Expected key prefix, checked at startup
        api_key_min_length: Shortest plausible key length
        available_models: All model variants offered by this vendor

    Performance:
        Builds an O(1) lookup dict from the list of variants once, after validation.
    """

    vendor: AIModelVendor
    api_key_env: str
    api_key_prefix: str | None = None
    api_key_min_length: int = 20
    available_models: tuple[ModelVariant, ...] = ()

    model_config = ConfigDict(frozen=True)

    _variant_lookup: dict[str, ModelVariant] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def check_duplicate_identifiers(self) -> VendorCatalog:
        """Validate no identifier (including aliases) appears in two variants.

        Raises:
            ValueError: If any identifier appears in multiple variants
        """
        all_ids = [id for variant in self.available_models for id in variant.identifiers]
        unique_ids = set(all_ids)

        if len(all_ids) != len(unique_ids):
            duplicates = [x for x in unique_ids if all_ids.count(x) > 1]
            raise ValueError(f"Duplicate model identifiers for vendor '{self.vendor.value}': {sorted(duplicates)}")
        return self

    def model_post_init(self, context: Any) -> None:
        self._variant_lookup = {id: variant for variant in self.available_models for id in variant.identifiers}

    def find_variant(self, identifier: str) -> ModelVariant:
        """Find Model Variant by Any Valid Identifier.

        Accepts ID, API ID, or any alias.

        Raises:
            KeyError: If identifier not found in catalog
        """
        variant = self._variant_lookup.get(identifier.strip())
        if variant is None:
            raise KeyError(f"Model '{identifier}' not registered for vendor '{self.vendor.value}'")
        return variant

    def key_format_problem(self, api_key: str | None) -> str | None:
        """Describe what is wrong with an API key's format, or None if it looks valid."""
        if not api_key:
            return f"{self.api_key_env} is not set"
        if self.api_key_prefix and not api_key.startswith(self.api_key_prefix):
            return f"{self.api_key_env} should start with '{self.api_key_prefix}'"
        if len(api_key) < self.api_key_min_length:
            return f"{self.api_key_env} looks too short"
        return None


class ProviderCatalog(RootModel[dict[AIModelVendor, VendorCatalog]]):
    """Catalog of vendors - wraps dict for type safety and validation."""

    root: dict[AIModelVendor, VendorCatalog]

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderCatalog:
        """Load catalog from dict, explicitly injecting vendor keys - no mutation."""
        enriched = {vendor_key: {**vendor_data, "vendor": vendor_key} for vendor_key, vendor_data in data.items()}
        return cls.model_validate(enriched)

    @classmethod
    def from_json_file(cls, path: Path = DEFAULT_CATALOG_PATH) -> ProviderCatalog:
        """Load and validate catalog from JSON."""
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls.from_dict(data)

    def vendor(self, vendor: AIModelVendor) -> VendorCatalog:
        if vendor not in self.root:
            raise KeyError(f"Vendor '{vendor.value}' not registered")
        return self.root[vendor]

    def parse_spec(self, identifier: str) -> ProviderSpec:
        vendor_key, sep, variant_id = identifier.partition(":")
        if not sep:
            raise ValueError("Provider identifier must be in 'vendor:model' format")
        vendor = AIModelVendor(vendor_key.strip())
        variant = self.vendor(vendor).find_variant(variant_id.strip())
        return ProviderSpec(vendor=vendor, variant_id=variant.id)


# ---------------------------------------------------------------------------
# Provider specifications and routing
# ---------------------------------------------------------------------------


class ProviderSpec(BaseModel):
    """Normalized reference to a vendor-scoped model variant."""

    vendor: AIModelVendor
    variant_id: str

    model_config = ConfigDict(frozen=True)

    @property
    def identifier(self) -> str:
        return f"{self.vendor.value}:{self.variant_id}"

    def variant(self, catalog: ProviderCatalog) -> ModelVariant:
        return catalog.vendor(self.vendor).find_variant(self.variant_id)


class ProviderRoute(BaseModel):
    """The two provider specs a deployment routes between.

    The fast spec serves FAST commands, the capable spec serves CAPABLE
    commands, and each is the other's fallback.
    """

    fast: ProviderSpec
    capable: ProviderSpec

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _distinct_targets(self) -> ProviderRoute:
        if self.fast == self.capable:
            raise ValueError("Fast and capable providers must differ so one can back up the other")
        return self

    @classmethod
    def from_identifiers(cls, fast: str, capable: str, *, catalog: ProviderCatalog) -> ProviderRoute:
        return cls(fast=catalog.parse_spec(fast), capable=catalog.parse_spec(capable))


__all__ = [
    "DEFAULT_CATALOG_PATH",
    "ModelVariant",
    "ProviderCatalog",
    "ProviderRoute",
    "ProviderSpec",
    "VendorCatalog",
]
