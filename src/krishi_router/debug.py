"""Rich debug logging with color-coded categories.

Enable: set KR_DEBUG=1 or pass --debug to the daemon.
Logs to both stderr (colored) and a rolling log file.

Categories & colors:
  🟦 BLUE    — daemon lifecycle, config, startup
  🟩 GREEN   — provider input/output (prompts + responses)
  🟨 YELLOW  — routing decisions (image priority, dispatch, fallbacks)
  🟪 PURPLE  — Supabase persistence
  🟥 RED     — errors and warnings
  🟧 ORANGE  — HTTP requests to the daemon
"""
import json
import os
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from . import config

# ANSI color codes
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

COLORS = {
    "DAEMON":   "\033[34m",      # Blue
    "PROVIDER": "\033[32m",      # Green
    "ROUTER":   "\033[33m",      # Yellow
    "STORAGE":  "\033[35m",      # Purple/Magenta
    "ERROR":    "\033[31m",      # Red
    "HTTP":     "\033[38;5;208m", # Orange (256-color)
}

# Emoji prefixes for file logs (no ANSI)
EMOJI = {
    "DAEMON":   "🟦",
    "PROVIDER": "🟩",
    "ROUTER":   "🟨",
    "STORAGE":  "🟪",
    "ERROR":    "🟥",
    "HTTP":     "🟧",
}

MAX_LOG_BYTES = 10 * 1024 * 1024

_debug_enabled = False
_log_file = None
_log_path = None


def is_enabled() -> bool:
    return _debug_enabled


def init(enabled: bool = None, log_dir: Path = None):
    """Initialize debug logging. Call once at daemon startup."""
    global _debug_enabled, _log_file, _log_path

    if enabled is None:
        enabled = os.environ.get("KR_DEBUG", "0") in ("1", "true", "yes")

    _debug_enabled = enabled

    if not enabled:
        return

    log_dir = log_dir or config.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    _log_path = log_dir / "debug.log"

    if _log_path.exists() and _log_path.stat().st_size > MAX_LOG_BYTES:
        rotated = log_dir / f"debug.{int(time.time())}.log"
        _log_path.rename(rotated)

    _log_file = open(_log_path, "a", buffering=1, encoding="utf-8")  # line-buffered

    log("DAEMON", f"Debug logging enabled. Log file: {_log_path}")
    log("DAEMON", f"Tail with: tail -f {_log_path}")


def log(category: str, message: str, data: dict = None):
    """Log a debug message with category color coding."""
    if not _debug_enabled:
        return

    ts = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
    cat = category.upper()

    # Terminal (colored)
    color = COLORS.get(cat, RESET)
    prefix = f"{DIM}{ts}{RESET} {color}{BOLD}[{cat:8s}]{RESET} {color}"
    line = f"{prefix}{message}{RESET}"
    if data:
        data_str = json.dumps(data, indent=2, default=str, ensure_ascii=False)
        indented = "\n".join(f"  {color}{l}{RESET}" for l in data_str.split("\n"))
        line += f"\n{indented}"
    print(line, file=sys.stderr, flush=True)

    # File (emoji, no ANSI)
    emoji = EMOJI.get(cat, "  ")
    file_line = f"{ts} {emoji} [{cat:8s}] {message}"
    if data:
        file_line += f"\n{json.dumps(data, indent=2, default=str, ensure_ascii=False)}"
    if _log_file:
        _log_file.write(file_line + "\n")


def log_provider_request(backend: str, prompt: str, has_image: bool = False):
    """Log an outbound provider request."""
    log("PROVIDER", f"→ {backend} ({'with image' if has_image else 'text only'})")
    for i, line in enumerate(prompt.strip().split("\n")):
        prefix = "  Prompt: " if i == 0 else "          "
        log("PROVIDER", f"{prefix}{line}")


def log_provider_response(backend: str, response: str, duration_ms: float):
    """Log a provider response."""
    lines = (response or "").strip().split("\n") or [""]
    for i, line in enumerate(lines):
        prefix = f"← {backend} ({duration_ms:.0f}ms): " if i == 0 else "  " + " " * 20
        log("PROVIDER", f"{prefix}{line}")


def log_route(step: str, detail: str = ""):
    """Log a routing decision."""
    log("ROUTER", step + (f" — {detail}" if detail else ""))


def log_storage(table: str, action: str, success: bool = True):
    """Log Supabase persistence events."""
    status = "✓" if success else "✗"
    log("STORAGE", f"{status} {table}: {action}")


def log_http(method: str, path: str, status: int, duration_ms: float):
    """Log HTTP request to daemon."""
    log("HTTP", f"{method} {path} → {status} ({duration_ms:.0f}ms)")


def close():
    """Flush and close log file."""
    global _log_file
    if _log_file:
        _log_file.close()
        _log_file = None
