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
from job_tracker.status_history import format_duration, format_timestamp, to_timeline_items


def main():
    parser = argparse.ArgumentParser(description="Show the status timeline of one job application")
    parser.add_argument("application_id", type=int, help="Job application id")
    parser.add_argument("--config", default="", help="Path to a client config JSON file")
    parser.add_argument("--json", action="store_true", help="Print the normalized history as JSON")
    args = parser.parse_args()

    cfg = load_client_config(Path(args.config) if args.config else None)
    errors = validate_client_config(cfg)
    if errors:
        raise SystemExit("Invalid client config: " + "; ".join(errors))

    client = build_client(cfg)
    if not client.session.is_authenticated:
        raise SystemExit("Not logged in. Run scripts/login.py first.")

    try:
        history = StatusTrackingAPI(client).get_status_history(args.application_id)
    except ApiError as e:
        raise SystemExit(f"Failed to load status history: {e.message}")

    if args.json:
        print(json.dumps(history.to_dict(), indent=2, ensure_ascii=False))
        return

    if not history.entries:
        print("No status changes recorded.")
        return

    summary = history.summary
    print(
        f"application={args.application_id} current={summary.current_stage} initial={summary.initial_status} "
        f"changes={summary.status_count} total={format_duration(summary.total_duration)}"
    )
    for item in to_timeline_items(history):
        marker = "*" if item["is_current"] else "-"
        line = f"  {marker} {format_timestamp(item['timestamp'])} {item['status']}"
        if item["duration"]:
            line += f" ({format_duration(item['duration'])})"
        if item["note"]:
            line += f" note={item['note']}"
        print(line)


if __name__ == "__main__":
    main()
