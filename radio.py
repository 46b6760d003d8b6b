import subprocess
from typing import List, Optional, Tuple


def run_nmcli(args: List[str], timeout: int = 15) -> Tuple[bool, str]:
    """
    Run one nmcli command. Returns (ok, stdout-or-error) and never raises,
    so a missing NetworkManager only shows up on the console.
    """
    cmd = ["nmcli"] + args
    try:
        res = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        return False, "nmcli not found"
    except subprocess.TimeoutExpired:
        return False, f"timeout: {' '.join(cmd)}"
    if res.returncode != 0:
        return False, (res.stderr or res.stdout or "").strip()
    return True, (res.stdout or "").strip()


class NmcliRadio:
    """WiFi radio driven through NetworkManager."""

    def __init__(self, iface: str, ap_connection_name: str):
        self.iface = iface
        self.ap_connection_name = ap_connection_name
        self._join_proc: Optional[subprocess.Popen] = None

    def join(self, ssid: str, passphrase: str) -> bool:
        """Start joining a network. Returns immediately; poll is_connected()."""
        cmd = ["nmcli", "device", "wifi", "connect", ssid]
        if passphrase:
            cmd += ["password", passphrase]
        cmd += ["ifname", self.iface]
        try:
            self._join_proc = subprocess.Popen(
                cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
        except OSError as e:
            print(f"Station join could not start: {e}", flush=True)
            return False
        return True

    def is_connected(self) -> bool:
        if self._join_proc is not None and self._join_proc.poll() is not None:
            # reap the finished join
            self._join_proc = None
        ok, out = run_nmcli(["-t", "-g", "GENERAL.STATE", "device", "show", self.iface], timeout=5)
        return ok and out.startswith("100")

    def address(self) -> str:
        ok, out = run_nmcli(["-t", "-g", "IP4.ADDRESS", "device", "show", self.iface], timeout=5)
        if not ok or not out:
            return ""
        # "192.168.1.23/24" (first address wins)
        return out.split("|")[0].split("/")[0].strip()

    def start_access_point(self, ap_name: str, gateway_ip: str) -> Tuple[bool, str]:
        """Broadcast an open network on gateway_ip/24."""
        run_nmcli(["connection", "delete", self.ap_connection_name])

        ok, info = run_nmcli([
            "connection", "add", "type", "wifi", "ifname", self.iface,
            "con-name", self.ap_connection_name, "autoconnect", "no", "ssid", ap_name,
            "mode", "ap", "802-11-wireless.band", "bg",
            "ipv4.method", "manual", "ipv4.addresses", f"{gateway_ip}/24",
        ])
        if not ok:
            return False, info
        return run_nmcli(["connection", "up", self.ap_connection_name], timeout=30)
