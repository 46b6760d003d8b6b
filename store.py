import os, threading, time
from dataclasses import dataclass
from typing import List, Optional, Tuple

DEFAULT_AP_NAME = "SetupWiFi"
DEFAULT_SITE_NAME = "funnyportal"
NO_LOG_ENTRIES = "no log entries yet"

_BOOT_MONOTONIC = time.monotonic()


@dataclass(frozen=True)
class Credentials:
    ssid: str = ""
    passphrase: str = ""


@dataclass(frozen=True)
class PortalSettings:
    ap_name: str = DEFAULT_AP_NAME
    site_name: str = DEFAULT_SITE_NAME
    public_wall: bool = True


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)

def uptime_hms(now: Optional[float] = None) -> str:
    """
    HH:MM:SS since process start, wrapping every 24h.
    Not wall-clock: the device has no RTC.
    """
    if now is None:
        now = time.monotonic()
    secs = int(now - _BOOT_MONOTONIC) % 86400
    return f"{secs // 3600:02d}:{(secs // 60) % 60:02d}:{secs % 60:02d}"

def _read_text(path: str, max_bytes: int = -1) -> Optional[str]:
    try:
        with open(path, "rb") as f:
            data = f.read(max_bytes)
    except OSError:
        return None
    return data.decode("utf-8", errors="ignore")

def _write_text(path: str, text: str, mode: str = "w") -> bool:
    try:
        with open(path, mode, encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        print(f"Write failed for {path}: {e}", flush=True)
        return False
    return True

def _delete(path: str) -> bool:
    try:
        os.remove(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        print(f"Delete failed for {path}: {e}", flush=True)
        return False
    return True


# --- Configuration record ---------------------------------------------------

def _name_or_default(value: str, default: str) -> str:
    value = (value or "").strip()
    return value or default

def parse_config(text: str) -> Tuple[Credentials, PortalSettings]:
    """
    Line 1 ssid, line 2 passphrase, then key=value lines.
    Unknown keys are skipped so older firmware can read newer files.
    """
    lines = text.split("\n")
    ssid = lines[0].strip() if lines else ""
    passphrase = lines[1].strip() if len(lines) > 1 else ""

    ap_name, site_name, public_wall = DEFAULT_AP_NAME, DEFAULT_SITE_NAME, True
    for raw in lines[2:]:
        line = raw.strip()
        eq = line.find("=")
        if eq <= 0:
            continue
        key, value = line[:eq], line[eq + 1:].strip()
        if key == "ap_ssid":
            ap_name = _name_or_default(value, DEFAULT_AP_NAME)
        elif key == "site_name":
            site_name = _name_or_default(value, DEFAULT_SITE_NAME)
        elif key == "public_wall":
            public_wall = value in ("1", "true")

    return (
        Credentials(ssid=ssid, passphrase=passphrase),
        PortalSettings(ap_name=ap_name, site_name=site_name, public_wall=public_wall),
    )

def one_line(value: str) -> str:
    return " ".join((value or "").splitlines())

def format_config(creds: Credentials, settings: PortalSettings) -> str:
    # one field per line
    return "\n".join([
        one_line(creds.ssid),
        one_line(creds.passphrase),
        "ap_ssid=" + _name_or_default(one_line(settings.ap_name), DEFAULT_AP_NAME),
        "site_name=" + _name_or_default(one_line(settings.site_name), DEFAULT_SITE_NAME),
        "public_wall=" + ("1" if settings.public_wall else "0"),
    ]) + "\n"

def load_config(path: str) -> Tuple[Credentials, PortalSettings, bool]:
    """Never raises. found=False when the record is missing or unreadable."""
    text = _read_text(path)
    if text is None:
        return Credentials(), PortalSettings(), False
    creds, settings = parse_config(text)
    return creds, settings, True

def load_settings_only(path: str) -> PortalSettings:
    return load_config(path)[1]

def save_config(path: str, creds: Optional[Credentials], settings: PortalSettings) -> bool:
    """
    Always writes all five lines. creds=None keeps whatever credentials are
    already stored (empty slots when there are none).
    """
    if creds is None:
        creds = load_config(path)[0]
    return _write_text(path, format_config(creds, settings))


# --- Landing template -------------------------------------------------------

def load_landing(path: str, max_bytes: int) -> Optional[str]:
    text = _read_text(path, max_bytes)
    if not text:
        return None
    return text

def write_landing(path: str, html: str) -> bool:
    return _write_text(path, html)

def delete_landing(path: str) -> bool:
    return _delete(path)


# --- Record stores ----------------------------------------------------------

def _first_lines(text: str, n: int) -> str:
    """Cut text right after its n-th line break; a short text is returned as-is."""
    pos = -1
    for _ in range(n):
        pos = text.find("\n", pos + 1)
        if pos == -1:
            return text
    return text[:pos + 1]


class RecordStore:
    """
    Line-oriented record file.

    max_entries=None: append at the end, never evict (connection log).
    max_entries=N:    prepend, keep the N newest lines (public wall).
    """

    def __init__(self, path: str, max_entries: Optional[int] = None):
        self.path = path
        self.max_entries = max_entries
        self._lock = threading.Lock()

    @property
    def bounded(self) -> bool:
        return self.max_entries is not None

    def append(self, line: str) -> bool:
        line = line.rstrip("\n")
        with self._lock:
            if not self.bounded:
                return _write_text(self.path, line + "\n", mode="a")
            existing = _read_text(self.path) or ""
            data = _first_lines(line + "\n" + existing, self.max_entries)
            return _write_text(self.path, data)

    def read_text(self) -> str:
        return _read_text(self.path) or ""

    def read_all(self) -> List[str]:
        return [ln for ln in self.read_text().split("\n") if ln.strip()]

    def is_empty(self) -> bool:
        return not self.read_text().strip()

    def clear(self) -> bool:
        with self._lock:
            return _delete(self.path)
