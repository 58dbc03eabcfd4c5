#!/usr/bin/env python3
import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from job_tracker.config import build_client, load_client_config, validate_client_config
from job_tracker.stores.auth import AuthStore


def main():
    parser = argparse.ArgumentParser(description="Log in and persist the session for the other scripts")
    parser.add_argument("--username", default="", help="Account username (defaults to the remembered one)")
    parser.add_argument("--remember", action="store_true", help="Remember the username for next time")
    parser.add_argument("--logout", action="store_true", help="End the stored session instead")
    parser.add_argument("--config", default="", help="Path to a client config JSON file")
    args = parser.parse_args()

    cfg = load_client_config(Path(args.config) if args.config else None)
    errors = validate_client_config(cfg)
    if errors:
        raise SystemExit("Invalid client config: " + "; ".join(errors))

    store = AuthStore(build_client(cfg))
    if args.logout:
        store.logout()
        print("Logged out.")
        return

    username = args.username.strip() or str(store.remembered_username or "").strip()
    if not username:
        username = input("Username: ").strip()
    password = getpass.getpass("Password: ")

    if not store.login({"username": username, "password": password, "remember_me": args.remember}):
        raise SystemExit("Login failed.")
    print(f"Logged in as {store.user_name}. Session saved to {cfg['session_file']}")


if __name__ == "__main__":
    main()
