from typing import List

import pandas as pd

from layouts import AREAS
from schemas import AreaStats, DispositionStats, SeatDetail


def _counts(series: pd.Series) -> dict:
    return {str(k): int(v) for k, v in series.value_counts().items()}


def compute_stats(seats: List[SeatDetail]) -> DispositionStats:
    """Occupancy summary for one session day's seats."""
    if not seats:
        return DispositionStats(area_stats={area: AreaStats() for area in AREAS})

    df = pd.DataFrame([s.model_dump() for s in seats])
    status = df["status"]

    area_stats = {}
    for area in AREAS:
        in_area = df[df["area"] == area]
        area_stats[area] = AreaStats(
            total=len(in_area),
            occupied=int((in_area["status"] == "occupied").sum()),
            reserved=int((in_area["status"] == "reserved").sum()),
        )

    booked = df[df["booking_id"].notna()]
    with_company = booked[booked["company_id"].notna()]
    with_manual = booked[booked["manual_id"].notna()]

    return DispositionStats(
        total_seats=len(df),
        occupied_seats=int((status == "occupied").sum()),
        reserved_seats=int((status == "reserved").sum()),
        empty_seats=int((status == "empty").sum()),
        area_stats=area_stats,
        company_stats=_counts(with_company["company_name"].fillna("Unknown")),
        manual_stats=_counts(with_manual["manual_name"].fillna("Unknown")),
    )
