"""Base model and enum for decoded GNSS and protocol data.

Every model inherits from :class:`BridgeBaseModel`, which is frozen and
ignores unknown keys.

Code tables inherit from :class:`CodeEnum`, which adds an ``UNKNOWN``
member at ``-1`` and a ``_missing_`` hook that returns ``UNKNOWN`` for any
code without a mapped member. Labels are attached with :func:`with_labels`.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

TEnum = TypeVar("TEnum", bound="CodeEnum")

_LABEL_TABLES: dict[type, dict[int, str]] = {}

UNKNOWN_LABEL = "unknown"


def with_labels(labels: Mapping[int, str]) -> Callable[[type[TEnum]], type[TEnum]]:
    """Class decorator registering human-readable labels for a :class:`CodeEnum`."""

    def decorate(cls: type[TEnum]) -> type[TEnum]:
        _LABEL_TABLES[cls] = dict(labels)
        return cls

    return decorate


class CodeEnum(enum.IntEnum):
    """Base for receiver code tables.

    Every subclass **must** define ``UNKNOWN = -1``.
    Codes the receiver sends that have no mapped member resolve to
    ``UNKNOWN`` instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> CodeEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: CodeEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))

    @property
    def label(self) -> str:
        """Human-readable description, ``"unknown"`` for unmapped codes."""
        return _LABEL_TABLES.get(type(self), {}).get(int(self), UNKNOWN_LABEL)


class BridgeBaseModel(BaseModel):
    """Base for immutable gnssbridge value objects."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
