"""Base model for reservation-system API payloads.

Every wire model inherits from :class:`ReservaBaseModel`, which is the single
canonicalization layer between the services and the rest of the library:

* every incoming key is converted to snake_case
  (``ownerId`` -> ``owner_id``, ``Results`` -> ``results``);
* per-model ``_KEY_ALIASES`` rename semantic variants
  (``Pages`` -> ``total_pages``);
* a key that is already canonical wins over a converted variant;
* ``None`` values are dropped so the field default applies;
* the original payload is stashed in ``raw``.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_snake


def canonical_key(key: str, aliases: dict[str, str] | None = None) -> str:
    """Return the canonical (snake_case) name for an incoming key."""
    if aliases and key in aliases:
        return aliases[key]
    return to_snake(key)


class ReservaBaseModel(BaseModel):
    """Base for reservation-system response models."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """Exact wire key -> canonical field name, for renames ``to_snake`` can't infer."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original API response dict."""

    @staticmethod
    def _canonicalize(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        canonical: dict[str, Any] = {}
        variants: list[tuple[str, Any]] = []
        for key, value in values.items():
            if value is None:
                continue
            name = canonical_key(str(key), aliases)
            if name == key:
                canonical[name] = value
            else:
                variants.append((name, value))
        for name, value in variants:
            canonical.setdefault(name, value)
        return canonical

    @model_validator(mode="before")
    @classmethod
    def _canonicalize_payload(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        original = dict(values)
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        cleaned = ReservaBaseModel._canonicalize(original, aliases)
        # Keep an explicitly passed raw= (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
