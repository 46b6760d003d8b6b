import os, sys, threading
from typing import Callable, Optional

from config import Settings
from store import (
    Credentials, PortalSettings, RecordStore, NO_LOG_ENTRIES,
    DEFAULT_AP_NAME, DEFAULT_SITE_NAME,
    load_config, load_settings_only, save_config, load_landing, write_landing, delete_landing,
    one_line, uptime_hms,
)
from templating import DEFAULT_LANDING, build_message_section, render_landing


def restart_process() -> None:
    """Replace the running process with a fresh copy of itself."""
    print("Restarting...", flush=True)
    os.execv(sys.executable, [sys.executable] + sys.argv)

def schedule_restart(delay: float, restart: Callable[[], None] = restart_process) -> threading.Timer:
    t = threading.Timer(delay, restart)
    t.daemon = True
    t.start()
    return t


class Portal:
    """
    Portal-mode session state: the in-memory settings mirror plus the stores
    behind the landing page and the admin pages.
    """

    def __init__(self, s: Settings, restart: Optional[Callable[[], None]] = None):
        self.s = s
        self.log = RecordStore(s.log_path)
        self.wall = RecordStore(s.wall_path, max_entries=s.max_wall_entries)
        self.settings = PortalSettings()
        self._restart = restart
        self.restart_timer: Optional[threading.Timer] = None

    def enter(self) -> PortalSettings:
        """(Re)load the settings mirror from disk. Called on every portal-mode entry."""
        self.settings = load_settings_only(self.s.config_path)
        return self.settings

    def record(self, text: str) -> bool:
        return self.log.append(f"[{uptime_hms()}] {text}")

    def stored_ssid(self) -> str:
        return load_config(self.s.config_path)[0].ssid

    # --- auth ---

    def is_authorized(self, user: Optional[str], password: Optional[str]) -> bool:
        if user is None or password is None:
            return False
        return user == self.s.admin_user and password == self.s.admin_pass

    # --- landing ---

    def custom_landing(self) -> Optional[str]:
        return load_landing(self.s.landing_path, self.s.landing_max_load_bytes)

    def landing_template(self) -> str:
        return self.custom_landing() or DEFAULT_LANDING

    def message_section(self) -> str:
        records = self.wall.read_all() if self.settings.public_wall else []
        return build_message_section(self.settings.public_wall, records, self.s.max_message_chars)

    def render_landing(self) -> str:
        return render_landing(self.landing_template(), self.settings.site_name, self.message_section())

    def submit_message(self, raw: Optional[str]) -> Optional[str]:
        """
        Store a visitor message. Returns the stored text, or None when there
        was nothing to store. Public wall off means the message only reaches
        the admin log.
        """
        msg = one_line(raw).strip()
        if not msg:
            return None
        msg = msg[: self.s.max_message_chars]
        ts = uptime_hms()

        if self.settings.public_wall:
            self.wall.append(f"{ts}|{msg}")
            self.log.append(f"[{ts}] WALL: {msg}")
        else:
            self.log.append(f"[{ts}] MSG: {msg}")
        return msg

    # --- admin actions ---

    def log_text(self) -> str:
        if self.log.is_empty():
            return NO_LOG_ENTRIES
        return self.log.read_text()

    def clear_log(self) -> bool:
        return self.log.clear()

    def clear_wall(self) -> bool:
        ok = self.wall.clear()
        if ok:
            self.record("ADMIN: wall cleared")
        return ok

    def save_settings(self, ap_name: str, site_name: str, public_wall: bool) -> bool:
        new = PortalSettings(
            ap_name=one_line(ap_name).strip() or DEFAULT_AP_NAME,
            site_name=one_line(site_name).strip() or DEFAULT_SITE_NAME,
            public_wall=bool(public_wall),
        )
        if not save_config(self.s.config_path, None, new):
            return False
        self.settings = new
        self.record(f"ADMIN: settings saved ap={new.ap_name} site={new.site_name} wall={int(new.public_wall)}")
        return True

    def check_landing(self, html: str) -> str:
        """Returns an error message, or "" when html may be saved."""
        if len(html.encode("utf-8")) > self.s.landing_max_save_bytes:
            return f"Landing page too large (max {self.s.landing_max_save_bytes} bytes)."
        if "<html" not in html.lower():
            return "Landing page must contain an <html> tag."
        return ""

    def save_landing(self, html: str) -> bool:
        if not write_landing(self.s.landing_path, html):
            return False
        self.record("ADMIN: landing page saved")
        return True

    def reset_landing(self) -> bool:
        ok = delete_landing(self.s.landing_path)
        if ok:
            self.record("ADMIN: landing page reset to default")
        return ok

    def deploy(self, ssid: str, passphrase: str) -> bool:
        """Persist station credentials next to the current settings. ssid must be non-empty."""
        creds = Credentials(ssid=one_line(ssid).strip(), passphrase=one_line(passphrase).strip())
        if not save_config(self.s.config_path, creds, self.settings):
            return False
        self.record(f"ADMIN: deploy ssid={creds.ssid}")
        return True

    def restart(self) -> threading.Timer:
        self.record("ADMIN: restart requested")
        self.restart_timer = schedule_restart(self.s.restart_delay_seconds, self._restart or restart_process)
        return self.restart_timer
