#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from job_tracker.api.export import DEFAULT_EXPORT_FIELDS, SUPPORTED_FORMATS, ExportAPI, format_file_size
from job_tracker.config import build_client, load_client_config, validate_client_config
from job_tracker.errors import ApiError
from job_tracker.paths import DATA


def main():
    parser = argparse.ArgumentParser(description="Export job applications to a spreadsheet and download it")
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, default="xlsx", help="Export file format")
    parser.add_argument("--fields", default="", help="Comma-separated field names (default: common fields)")
    parser.add_argument("--status", default="", help="Only export applications in this status")
    parser.add_argument("--out-dir", default=str(DATA / "exports"), help="Directory for the downloaded file")
    parser.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for the export task")
    parser.add_argument("--config", default="", help="Path to a client config JSON file")
    args = parser.parse_args()

    cfg = load_client_config(Path(args.config) if args.config else None)
    errors = validate_client_config(cfg)
    if errors:
        raise SystemExit("Invalid client config: " + "; ".join(errors))

    client = build_client(cfg)
    if not client.session.is_authenticated:
        raise SystemExit("Not logged in. Run scripts/login.py first.")

    fields = [f.strip() for f in args.fields.split(",") if f.strip()] or list(DEFAULT_EXPORT_FIELDS)
    request = {"format": args.format, "fields": fields}
    if args.status.strip():
        request["filters"] = {"status": [args.status.strip()]}

    api = ExportAPI(client, download_timeout_sec=cfg["download_timeout_sec"])
    try:
        task = api.start_export(request)
        print(f"Started export task {task.task_id} ({task.status})")
        task = api.wait_for_export(task.task_id, timeout_sec=args.timeout)
        if task.status != "completed":
            raise SystemExit(f"Export {task.status}: {task.error_message or 'no details'}")
        path = api.download_file(task.task_id, Path(args.out_dir))
    except ValueError as e:
        raise SystemExit(str(e))
    except ApiError as e:
        raise SystemExit(f"Export failed: {e.message}")

    print(f"Saved {task.total_records} records to {path} ({format_file_size(task.file_size)})")


if __name__ == "__main__":
    main()
