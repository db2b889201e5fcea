"""Metric descriptors and constant metric samples."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ValueType(Enum):
    """Kind of value a metric sample carries."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty name parts with underscores; an empty name gives ''."""
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class Desc:
    """Describes a metric: its full name, help text and variable label names."""

    fq_name: str
    help: str
    variable_labels: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "variable_labels", tuple(self.variable_labels))

    def metric(self, value_type: ValueType | str, value: float, *args: str) -> Metric:
        """Create a sample of this metric with one label value per variable label."""
        if len(args) != len(self.variable_labels):
            raise ValueError(
                f"{self.fq_name}: expected {len(self.variable_labels)} label values, "
                f"got {len(args)}"
            )
        labels = {name: str(arg) for name, arg in zip(self.variable_labels, args)}
        return Metric(self, ValueType(value_type), float(value), labels)


@dataclass(frozen=True)
class Metric:
    """A single sample: descriptor, value type, value and label values."""

    desc: Desc
    value_type: ValueType
    value: float
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.desc.fq_name