"""Example usage of TrafficTracker."""

import json
import logging
import sys
from pathlib import Path

# Add src to path so we can import traffictrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from traffictrack.config import TrackerConfig
from traffictrack.traffic_tracker import TrafficTracker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_snapshot(tracker: TrafficTracker, limit: int = 20):
    """
    Fetch and display the busiest stations and summary statistics.

    Args:
        tracker: Configured tracker.
        limit: Number of stations to list.
    """
    print(f"\n{'='*70}")
    print("Fetching latest JARTIC traffic snapshot")
    print(f"{'='*70}\n")

    snapshot = tracker.get_snapshot()
    if not snapshot.success:
        print(f"Error: {snapshot.error}")
        sys.exit(1)

    stats = snapshot.stats
    print(f"Time code: {snapshot.time_code}")
    print(f"Stations: {stats.total_stations}")
    print(f"Average / max / min volume: "
          f"{stats.average_traffic} / {stats.max_traffic} / {stats.min_traffic}")
    print(f"Over 100 / 50 / 20: "
          f"{stats.stations_over_100} / {stats.stations_over_50} / {stats.stations_over_20}")
    print(f"With issues: {stats.stations_with_issues} "
          f"(power {stats.power_issues}, data {stats.data_issues})\n")

    print(f"TOP {limit} STATIONS:")
    print("-" * 70)
    for station in snapshot.top(limit):
        print(f"  #{station.rank:<3} {station.display_name:<40} {station.volume:>5} vehicles "
              f"(↑{station.upbound} ↓{station.downbound}) {station.status.upper()}")

    analytics = tracker.get_analytics(snapshot)
    print("\nVEHICLE MIX:")
    print("-" * 70)
    print(f"  Small {analytics.small_vehicle_percent}% / Large {analytics.large_vehicle_percent}%")
    for mix, count in analytics.vehicle_mix.items():
        print(f"  {mix}: {count} stations")

    print("\n" + "=" * 70 + "\n")


if __name__ == "__main__":
    config = TrackerConfig.from_env()
    tracker = TrafficTracker.from_config(config)
    try:
        if "--csv" in sys.argv[1:]:
            snapshot = tracker.get_snapshot()
            if not snapshot.success:
                print(f"Error: {snapshot.error}")
                sys.exit(1)
            print(tracker.get_frame(snapshot).to_csv(index=False), end="")
        elif "--json" in sys.argv[1:]:
            print(json.dumps(tracker.get_snapshot().to_dict(), ensure_ascii=False, indent=2))
        else:
            print_snapshot(tracker)
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    finally:
        tracker.cleanup()
