import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.core.config import settings


# ── column widths ─────────────────────────────────────────────────────────────
_W_SERIAL  = 6
_W_DATE    = 12
_W_TIME    = 10
_W_LEVEL   = 8
_W_UID     = 14
_W_FP      = 14
_W_IP      = 16
_W_MODULE  = 30
_W_EVENT   = 48
_SEP       = " | "
_COLUMNS   = 9

_TOTAL_WIDTH = (
    _W_SERIAL + _W_DATE + _W_TIME + _W_LEVEL + _W_UID
    + _W_FP + _W_IP + _W_MODULE + _W_EVENT
    + len(_SEP) * (_COLUMNS - 1)
)


class StructuredFileHandler(logging.FileHandler):
    """File handler that writes one aligned row per record.

    Column layout:
        Serial | Date | Time | Level | User ID | Fingerprint | IP | Module/Function | Event
    """

    def __init__(self, log_file_path: str):
        super().__init__(log_file_path, mode="a", encoding="utf-8")
        self.log_counter = self._get_next_serial_number()
        self._ensure_header_exists()

    def _get_next_serial_number(self) -> int:
        try:
            if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
                with open(self.baseFilename, "r", encoding="utf-8") as f:
                    for line in reversed(f.readlines()):
                        parts = line.split(_SEP)
                        if parts and parts[0].strip().isdigit():
                            return int(parts[0].strip()) + 1
            return 1
        except OSError:
            return 1

    def _ensure_header_exists(self):
        if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
            return
        with open(self.baseFilename, "w", encoding="utf-8") as f:
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(f"{'TRIAL FINGERPRINT SERVICE LOG':^{_TOTAL_WIDTH}}\n")
            f.write("=" * _TOTAL_WIDTH + "\n")
            header = (
                f"{'#':<{_W_SERIAL}}"
                f"{_SEP}{'Date':<{_W_DATE}}"
                f"{_SEP}{'Time':<{_W_TIME}}"
                f"{_SEP}{'Level':<{_W_LEVEL}}"
                f"{_SEP}{'User ID':<{_W_UID}}"
                f"{_SEP}{'Fingerprint':<{_W_FP}}"
                f"{_SEP}{'IP':<{_W_IP}}"
                f"{_SEP}{'Module/Function':<{_W_MODULE}}"
                f"{_SEP}{'Event':<{_W_EVENT}}"
            )
            f.write(header + "\n")
            f.write("-" * _TOTAL_WIDTH + "\n")

    def emit(self, record: logging.LogRecord):
        try:
            dt = datetime.fromtimestamp(record.created)
            module_func = f"{record.module}.{record.funcName}"

            # Context is passed through extra={}; "-" when absent
            uid = _clip(str(getattr(record, "user_id", "-") or "-"), _W_UID)
            fp = _clip(str(getattr(record, "fingerprint", "-") or "-"), _W_FP)
            ip = _clip(str(getattr(record, "ip_address", "-") or "-"), _W_IP)

            message = record.getMessage()

            line = (
                f"{self.log_counter:<{_W_SERIAL}}"
                f"{_SEP}{dt.strftime('%Y-%m-%d'):<{_W_DATE}}"
                f"{_SEP}{dt.strftime('%H:%M:%S'):<{_W_TIME}}"
                f"{_SEP}{record.levelname:<{_W_LEVEL}}"
                f"{_SEP}{uid:<{_W_UID}}"
                f"{_SEP}{fp:<{_W_FP}}"
                f"{_SEP}{ip:<{_W_IP}}"
                f"{_SEP}{_clip(module_func, _W_MODULE):<{_W_MODULE}}"
                f"{_SEP}{_clip(message, _W_EVENT):<{_W_EVENT}}"
            )

            with open(self.baseFilename, "a", encoding="utf-8") as f:
                f.write(line + "\n")

                indent = " " * (_W_SERIAL + len(_SEP))
                if record.levelno >= logging.WARNING and len(message) > _W_EVENT:
                    f.write(f"{indent}Details: {message}\n")

                if record.exc_info:
                    import traceback
                    tb = "".join(traceback.format_exception(*record.exc_info))
                    f.write(f"{indent}Exception: {tb}\n")

                if record.levelno >= logging.ERROR:
                    f.write("-" * _TOTAL_WIDTH + "\n")

            self.log_counter += 1
        except Exception:
            self.handleError(record)


def _clip(text: str, width: int) -> str:
    if len(text) > width:
        return text[:width - 3] + "..."
    return text


# ── setup ─────────────────────────────────────────────────────────────────────

def setup_file_logging(log_level: int = logging.WARNING, log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured file + console logging.

    File handler records WARNING and above; the console uses *log_level*.
    """
    log_file_path = Path(log_file or settings.LOG_FILE)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = StructuredFileHandler(str(log_file_path))
    file_handler.setLevel(logging.WARNING)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    file_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    logging.basicConfig(level=log_level, handlers=[file_handler, console_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.warning(
        "Trial Fingerprint SESSION STARTED at %s",
        datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )
    return logger


# ── helpers for callers ───────────────────────────────────────────────────────

def log_trial_event(
    operation: str,
    fingerprint: str,
    ip_address: Optional[str],
    outcome: str,
    user_id: Optional[str] = None,
):
    """Log a check/record outcome with fingerprint and network context.

    Outcomes are INFO; only failures belong in the file log.
    """
    _log = logging.getLogger("trial_events")
    extra = {
        "user_id": user_id or "-",
        "fingerprint": fingerprint[:12] if fingerprint else "-",
        "ip_address": ip_address or "-",
    }
    _log.info("TRIAL %s - %s", operation, outcome, extra=extra)
