"""orbtrack quickstart: catalog positions and the conjunction summary.

Runs offline without Space-Track credentials; every object then uses a
synthetic element set. Set SPACE_TRACK_USERNAME / SPACE_TRACK_PASSWORD to
fetch live data.
"""

import logging

from orbtrack import Settings, TrackingService
from orbtrack.core.query import count_urgent
from orbtrack.core.risk import format_probability

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

service = TrackingService.from_settings(Settings())

for state in service.get_positions():
    print(
        f"{state.name:<26} {state.latitude_deg:7.2f}° {state.longitude_deg:8.2f}° "
        f"{state.altitude_km:9.1f} km  {state.speed_km_s:.2f} km/s"
    )

result = service.analyze({"sort": "probability", "limit": 5, "group_by": "time_window"})
print(f"\n{result.total} conjunctions, {count_urgent(result.events)} urgent")
for e in result.events:
    print(
        f"{e.tca:%Y-%m-%d %H:%M} | {e.satellite1} x {e.satellite2} | "
        f"{e.min_range_km:.2f} km | {format_probability(e.probability)} | {e.risk_level}"
    )

for window, events in result.groups.items():
    print(f"{window:>7}: {len(events)}")
