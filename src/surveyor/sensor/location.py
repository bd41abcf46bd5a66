from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LocationFix:
    """Latest known phone position, kept as the strings the provider reported."""

    latitude: str
    longitude: str

    @classmethod
    def unknown(cls) -> LocationFix:
        return cls(latitude="", longitude="")

    @classmethod
    def from_options(cls, latitude: str | None, longitude: str | None) -> LocationFix:
        return cls(latitude=(latitude or "").strip(), longitude=(longitude or "").strip())

    @property
    def is_known(self) -> bool:
        return bool(self.latitude and self.longitude)
