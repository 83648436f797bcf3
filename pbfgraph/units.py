from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Meters:
    value: float

    @classmethod
    def from_kilometers(cls, km: "Kilometers") -> "Meters":
        return cls(km.value * 1000.0)

    def __truediv__(self, speed: "MetersPerSecond") -> "Seconds":
        return Seconds(self.value / speed.value)


@dataclass(frozen=True)
class Kilometers:
    value: float


@dataclass(frozen=True)
class Seconds:
    value: float

    @classmethod
    def from_hours(cls, hours: "Hours") -> "Seconds":
        return cls(hours.value * 3600.0)


@dataclass(frozen=True)
class Hours:
    value: float


@dataclass(frozen=True)
class MetersPerSecond:
    value: float

    @classmethod
    def from_kmh(cls, kmh: "KilometersPerHour") -> "MetersPerSecond":
        meters = Meters.from_kilometers(Kilometers(kmh.value))
        seconds = Seconds.from_hours(Hours(1.0))
        return cls(meters.value / seconds.value)


@dataclass(frozen=True)
class KilometersPerHour:
    value: float


MPH_TO_KMH = 1.609344
