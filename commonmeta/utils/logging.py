from __future__ import annotations
import json, sys
from datetime import datetime, timezone
from pathlib import Path

from ..config import LOG_DIR

LOG_FILE = "commonmeta.log"
ECHO_LEVELS = {"WARN", "ERROR"}

class ConversionLogger:
    """
    Structured JSON-lines logger for conversions and legacy updates.

    Each line is ``{"ts", "level", "msg", **fields}``. Lines are appended to
    ``<log_dir>/commonmeta.log`` when a log directory is set (argument, else
    ``COMMONMETA_LOG_DIR``); WARN and ERROR lines are always echoed to stderr.
    """

    def __init__(self, log_dir: Path | str | None = None):
        log_dir = log_dir or LOG_DIR or None
        self.log_path: Path | None = None
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            self.log_path = Path(log_dir) / LOG_FILE

    def info(self, msg: str, **fields):
        self._emit("INFO", msg, fields)

    def warn(self, msg: str, **fields):
        self._emit("WARN", msg, fields)

    def error(self, msg: str, **fields):
        self._emit("ERROR", msg, fields)

    def _emit(self, level: str, msg: str, fields: dict):
        ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        txt = json.dumps({"ts": ts, "level": level, "msg": msg, **fields}, ensure_ascii=False, default=str)
        if self.log_path is not None:
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(txt + "\n")
        if level in ECHO_LEVELS:
            print(txt, file=sys.stderr)
