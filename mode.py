import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from config import Settings
from store import Credentials, RecordStore, load_config, uptime_hms


class Mode(str, Enum):
    STATION = "station"
    PORTAL = "portal"


@dataclass(frozen=True)
class BootDecision:
    mode: Mode
    ssid: str = ""
    address: str = ""
    polls: int = 0


def has_credentials(creds: Credentials, found: bool) -> bool:
    return found and bool(creds.ssid.strip())

def decide_mode(
    s: Settings,
    radio,
    log: RecordStore,
    sleep: Callable[[float], None] = time.sleep,
) -> BootDecision:
    """
    One-shot boot decision: LOADING_CONFIG -> CONNECTING -> STATION | PORTAL.

    The connect loop blocks the caller on purpose and always runs until the
    radio reports a connection or the retry budget is spent.
    """
    creds, _, found = load_config(s.config_path)
    if not has_credentials(creds, found):
        print("No stored credentials -> portal mode", flush=True)
        return BootDecision(mode=Mode.PORTAL)

    ssid = creds.ssid.strip()
    print(f"Joining '{ssid}' ({s.connect_retries} x {s.connect_interval_seconds}s)", flush=True)
    radio.join(ssid, creds.passphrase)

    for attempt in range(1, s.connect_retries + 1):
        sleep(s.connect_interval_seconds)
        if radio.is_connected():
            address = radio.address()
            log.append(f"[{uptime_hms()}] STA connected ssid={ssid} ip={address}")
            print(f"Station connected to '{ssid}' as {address}", flush=True)
            return BootDecision(mode=Mode.STATION, ssid=ssid, address=address, polls=attempt)

    print(f"Could not join '{ssid}' -> portal mode", flush=True)
    return BootDecision(mode=Mode.PORTAL, ssid=ssid, polls=s.connect_retries)
