"""
Cash drawer denominations and cents helpers.

All money in this service is integer cents. A drawer count is a vector of
seven non-negative counts; its value is computed here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from .errors import ValidationError


# Face value of each counted denomination, in cents
DENOMINATION_CENTS = {
    "quarters": 25,
    "bills_1": 100,
    "bills_5": 500,
    "bills_10": 1000,
    "bills_20": 2000,
    "bills_50": 5000,
    "bills_100": 10000,
}


@dataclass(frozen=True)
class Denominations:
    quarters: int = 0
    bills_1: int = 0
    bills_5: int = 0
    bills_10: int = 0
    bills_20: int = 0
    bills_50: int = 0
    bills_100: int = 0

    def __post_init__(self):
        for f in fields(self):
            count = getattr(self, f.name)
            if isinstance(count, bool) or not isinstance(count, int):
                raise ValidationError(f"{f.name} must be an integer count")
            if count < 0:
                raise ValidationError("Denomination counts cannot be negative")

    @classmethod
    def from_payload(cls, payload: dict | None) -> "Denominations":
        """Build from a JSON body. Missing keys count as zero; unknown keys are ignored."""
        payload = payload or {}
        counts = {}
        for name in DENOMINATION_CENTS:
            raw = payload.get(name, 0)
            if raw is None:
                raw = 0
            if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
                raw = int(raw.strip())
            counts[name] = raw
        return cls(**counts)

    @classmethod
    def from_model(cls, obj, prefix: str = "") -> "Denominations":
        return cls(**{name: getattr(obj, prefix + name) or 0 for name in DENOMINATION_CENTS})

    def value_cents(self) -> int:
        return sum(getattr(self, name) * cents for name, cents in DENOMINATION_CENTS.items())

    def covers(self, other: "Denominations") -> bool:
        """True when every denomination count is at least the other's."""
        return all(getattr(self, name) >= getattr(other, name) for name in DENOMINATION_CENTS)

    def __add__(self, other: "Denominations") -> "Denominations":
        return Denominations(**{n: getattr(self, n) + getattr(other, n) for n in DENOMINATION_CENTS})

    def __sub__(self, other: "Denominations") -> "Denominations":
        if not self.covers(other):
            raise ValidationError("Denomination counts cannot go negative")
        return Denominations(**{n: getattr(self, n) - getattr(other, n) for n in DENOMINATION_CENTS})

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in DENOMINATION_CENTS}
        data["total_cents"] = self.value_cents()
        return data


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator >= 0:
        return (numerator + denominator // 2) // denominator
    return -((-numerator + denominator // 2) // denominator)


def format_cents(cents: int | None) -> str:
    if cents is None:
        return "-"
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}${cents // 100:,}.{cents % 100:02d}"
