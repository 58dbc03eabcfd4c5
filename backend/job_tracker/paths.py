from pathlib import Path

BASE = Path(__file__).resolve().parents[1]
CONFIG = BASE / "config"
DATA = BASE / "data"
