"""RCON command execution through the ``mcrcon`` binary and ``list`` parsing."""

import re
import shutil
import subprocess

from nightowl.core.errors import RconError


def candidate_mcrcon_bins(configured=""):
    """Return preferred list of mcrcon binary candidates."""
    candidates = []
    if configured:
        candidates.append(configured)
    found = shutil.which("mcrcon")
    if found and found not in candidates:
        candidates.append(found)
    for path in ("/usr/bin/mcrcon", "/usr/local/bin/mcrcon", "/opt/mcrcon/mcrcon"):
        if path not in candidates:
            candidates.append(path)
    return candidates


def clean_rcon_output(text):
    """Strip ANSI and section-format control codes from RCON output."""
    cleaned = text or ""
    cleaned = re.sub(r"\x1b\[[0-9;]*[A-Za-z]", "", cleaned)
    cleaned = re.sub(r"§.", "", cleaned)
    return cleaned


def run_mcrcon(settings, command, log_exception=None):
    """Execute one RCON command and return its cleaned output.

    Each candidate binary is tried in turn; a candidate that is missing or
    times out moves on to the next one. A binary that runs but exits non-zero
    (bad password, connection refused) fails immediately.
    """
    argv_tail = ["-H", settings.rcon_host, "-P", str(settings.rcon_port), "-p", settings.rcon_password, command]
    last_error = None
    for bin_path in candidate_mcrcon_bins(settings.mcrcon_bin):
        try:
            result = subprocess.run(
                [bin_path] + argv_tail,
                capture_output=True,
                text=True,
                timeout=settings.rcon_timeout_seconds,
            )
        except FileNotFoundError as exc:
            last_error = exc
            continue
        except subprocess.TimeoutExpired as exc:
            last_error = exc
            if log_exception is not None:
                log_exception("run_mcrcon_candidate", exc)
            continue
        output = clean_rcon_output((result.stdout or "") + (result.stderr or "")).strip()
        if result.returncode != 0:
            detail = output[:400] or f"exit status {result.returncode}"
            raise RconError(f"RCON command {command.split(' ', 1)[0]!r} failed: {detail}")
        return output

    if isinstance(last_error, subprocess.TimeoutExpired):
        raise RconError(f"RCON command timed out after {settings.rcon_timeout_seconds:.1f}s") from last_error
    raise RconError("mcrcon binary not found") from last_error


def make_rcon_runner(settings, log_exception=None):
    """Bind settings into a ``run_rcon(command) -> str`` callable."""

    def run_rcon(command):
        return run_mcrcon(settings, command, log_exception=log_exception)

    return run_rcon


def parse_players_online(output):
    """Parse player-count integer from ``list`` command output, or ``None``."""
    text = clean_rcon_output(output).strip()
    if not text:
        return None
    match = re.search(r"There are\s+(\d+)(?:\s+(?:of|out of)\s+(?:a\s+)?max|\s*/\s*\d+)", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    if re.search(r"\bno players online\b", text, re.IGNORECASE):
        return 0
    match = re.search(r"(\d+)\s+players?\s+online", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    match = re.search(r"Players?\s+online:\s*(\d+)", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    return None
