from __future__ import annotations

import calendar
from collections import Counter

from ..config import Settings
from ..models.store import Store
from ..utils.constants import RequestStatus
from ..utils.filters import to_local
from .common import as_datetime, request_from_dict, utcnow, vehicle_from_dict


class StatisticsService:
    """Aggregations over the rent-request history for the admin dashboard."""

    def __init__(self, store: Store, settings: Settings | None = None, clock=utcnow):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock

    def get_statistics(self, recent_limit: int | None = None, top_limit: int | None = None,
                       months: int | None = None) -> dict:
        records = self.store.all_rent_requests()
        tz = self.settings.timezone

        # Totals
        status_cnt = Counter(r.get("status") for r in records)
        status_counts = {s.value: status_cnt.get(s.value, 0) for s in RequestStatus}

        # Requests per (year, month) of creation, business timezone
        month_cnt = Counter()
        for r in records:
            local = to_local(as_datetime(r["created_at"]), tz)
            month_cnt[(local.year, local.month)] += 1
        if months is not None:
            now = to_local(self.clock(), tz)
            first = now.year * 12 + now.month - 1 - (months - 1)
            month_cnt = Counter({k: v for k, v in month_cnt.items() if k[0] * 12 + k[1] - 1 >= first})
        monthly_stats = [
            {"year": y, "month": m, "label": calendar.month_abbr[m], "count": n}
            for (y, m), n in sorted(month_cnt.items())
        ]

        # Requests per vehicle
        veh_cnt = Counter(str(r["vehicle_id"]) for r in records if r.get("vehicle_id"))
        ranked = sorted(veh_cnt.items(), key=lambda x: (-x[1], x[0]))
        if top_limit is not None:
            ranked = ranked[:top_limit]
        top_vehicles = []
        for vid, n in ranked:
            v = vehicle_from_dict(self.store.get_vehicle(vid))
            top_vehicles.append({
                "vehicle_id": vid,
                "label": v.label if v else vid[:6],
                "request_count": n,
            })

        # Most recent first
        limit = self.settings.recent_limit if recent_limit is None else recent_limit
        newest = sorted(records, key=lambda r: (as_datetime(r["created_at"]), r["request_id"]), reverse=True)
        recent_requests = [request_from_dict(r).to_dict() for r in newest[:limit]]

        return {
            "total_requests": len(records),
            "status_counts": status_counts,
            "monthly_stats": monthly_stats,
            "top_vehicles": top_vehicles,
            "recent_requests": recent_requests,
        }
