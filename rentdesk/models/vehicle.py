from dataclasses import dataclass


@dataclass
class Vehicle:
    """
    Read-only view of a fleet vehicle. Rent requests reference vehicles by id
    only; this model is used for display labels and the active check.
    """
    vehicle_id: str
    make: str
    model: str
    year: int | None = None
    price_per_day: float = 0.0
    currency: str = "DZD"
    is_active: bool = True

    @property
    def label(self) -> str:
        parts = [self.make, self.model]
        if self.year:
            parts.append(str(self.year))
        return " ".join(p for p in parts if p) or self.vehicle_id[:6]
