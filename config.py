from dataclasses import dataclass
import os

@dataclass(frozen=True)
class Settings:
    # Persistent records (one file per logical record)
    data_dir: str = "data"
    config_name: str = "config.txt"
    log_name: str = "log.txt"
    wall_name: str = "wall.txt"
    landing_name: str = "landing.html"

    # Portal listener
    portal_host: str = "0.0.0.0"
    portal_port: int = 80
    gateway_ip: str = "192.168.4.1"  # AP address, also the answer for every DNS query

    # Wildcard DNS listener (UDP/53)
    dns_host: str = "0.0.0.0"
    dns_port: int = 53

    # Static admin pair, sent in clear on every admin form. Lab-grade on purpose.
    admin_user: str = "admin"
    admin_pass: str = "portal123"

    # Radio (NetworkManager)
    wifi_iface: str = "wlan0"
    ap_connection_name: str = "funnyportal-ap"

    # Station join budget: 20 polls x 500 ms
    connect_retries: int = 20
    connect_interval_seconds: float = 0.5

    # Delay between a deploy/reboot confirmation page and the restart
    restart_delay_seconds: float = 1.5

    # One pass of the scheduler loop waits at most this long for HTTP
    poll_interval_seconds: float = 0.05

    # Store limits
    max_wall_entries: int = 50
    max_message_chars: int = 200
    landing_max_save_bytes: int = 25000
    landing_max_load_bytes: int = 30000

    def path(self, name: str) -> str:
        return os.path.join(self.data_dir, name)

    @property
    def config_path(self) -> str:
        return self.path(self.config_name)

    @property
    def log_path(self) -> str:
        return self.path(self.log_name)

    @property
    def wall_path(self) -> str:
        return self.path(self.wall_name)

    @property
    def landing_path(self) -> str:
        return self.path(self.landing_name)

    @property
    def portal_url(self) -> str:
        return f"http://{self.gateway_ip}/portal"
