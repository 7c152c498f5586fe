"""Insertion zones: named markers in a target file where generated code may be spliced in."""
from dataclasses import dataclass


@dataclass(frozen=True)
class InsertionZone:
    zone_id: str
    marker: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"zone": self.zone_id, "marker": self.marker, "description": self.description}


# These banners MUST stay in the allowlisted files for proposals to land.
DEFAULT_ZONES = {
    "routes": InsertionZone(
        "routes",
        "/* =============================\n   ROUTES\n============================= */",
        "Safe area to insert new Express routes",
    ),
    "helpers": InsertionZone(
        "helpers",
        "/* =============================\n   HELPERS\n============================= */",
        "Safe area to insert helper functions",
    ),
}


def zones_in(text: str, zones) -> list[dict]:
    """Which registered markers are present in text (used by introspection)."""
    return [{"zone": z.zone_id, "found": z.marker in text} for z in zones.values()]
