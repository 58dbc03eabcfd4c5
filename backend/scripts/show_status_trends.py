#!/usr/bin/env python3
import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from job_tracker.api.status_tracking import StatusTrackingAPI
from job_tracker.config import build_client, load_client_config, validate_client_config
from job_tracker.errors import ApiError
from job_tracker.trends import TREND_WINDOWS


def main():
    parser = argparse.ArgumentParser(description="Show daily application counts and success rates")
    parser.add_argument("--period", choices=sorted(TREND_WINDOWS), default="month", help="Trend window")
    parser.add_argument("--config", default="", help="Path to a client config JSON file")
    parser.add_argument("--json", action="store_true", help="Print trend points as JSON")
    args = parser.parse_args()

    cfg = load_client_config(Path(args.config) if args.config else None)
    errors = validate_client_config(cfg)
    if errors:
        raise SystemExit("Invalid client config: " + "; ".join(errors))

    client = build_client(cfg)
    if not client.session.is_authenticated:
        raise SystemExit("Not logged in. Run scripts/login.py first.")

    try:
        points = StatusTrackingAPI(client).get_status_trends(args.period)
    except ApiError as e:
        raise SystemExit(f"Failed to load status trends: {e.message}")

    if args.json:
        print(json.dumps([p.to_dict() for p in points], indent=2, ensure_ascii=False))
        return

    if not points:
        print(f"No status changes in the last {TREND_WINDOWS[args.period]} days.")
        return

    for p in points:
        dist = ", ".join(f"{status}={count}" for status, count in sorted(p.status_distribution.items()))
        print(f"{p.date} total={p.total_applications} success={p.success_rate:.1%} [{dist}]")


if __name__ == "__main__":
    main()
