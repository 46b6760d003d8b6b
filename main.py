import sys, threading

from werkzeug.serving import make_server

from app import create_app
from config import Settings
from dns_server import WildcardDNS
from mode import Mode, decide_mode
from portal import Portal
from radio import NmcliRadio
from store import RecordStore, ensure_dir


def serve_portal(s: Settings, portal: Portal, radio) -> None:
    """
    Portal mode: open AP, wildcard DNS, HTTP routes. One loop drives both
    sockets; each step returns within poll_interval_seconds. Requests run on
    their own threads.
    """
    settings = portal.enter()

    ok, info = radio.start_access_point(settings.ap_name, s.gateway_ip)
    if not ok:
        print(f"AP start failed: {info}", flush=True)
    portal.record(f"PORTAL started ap={settings.ap_name} ip={s.gateway_ip}")

    http = make_server(s.portal_host, s.portal_port, create_app(portal), threaded=True)
    http.timeout = s.poll_interval_seconds
    dns = WildcardDNS(s.gateway_ip, s.dns_host, s.dns_port)

    print(f"Portal on http://{s.gateway_ip}:{s.portal_port}/portal, DNS on UDP/{s.dns_port}", flush=True)
    try:
        while True:
            dns.poll()
            http.handle_request()
    finally:
        dns.close()
        http.server_close()


def main() -> int:
    s = Settings()
    try:
        ensure_dir(s.data_dir)
    except OSError as e:
        # no persistence -> nothing sensible to run
        print(f"Storage init failed for {s.data_dir}: {e}", flush=True)
        return 1

    radio = NmcliRadio(s.wifi_iface, s.ap_connection_name)
    log = RecordStore(s.log_path)

    decision = decide_mode(s, radio, log)
    if decision.mode is Mode.STATION:
        print(f"Station mode ({decision.ssid} / {decision.address}); portal stays off", flush=True)
        threading.Event().wait()
        return 0

    serve_portal(s, Portal(s), radio)
    return 0


if __name__ == "__main__":
    sys.exit(main())
