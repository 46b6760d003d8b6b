import os
import re

import pytest

from app import CAPTIVE_PROBE_PATHS
from store import Credentials, PortalSettings, save_config

ADMIN = {"user": "admin", "pass": "portal123"}


def _wall_lines(settings):
    try:
        return open(settings.wall_path, encoding="utf-8").read().splitlines()
    except FileNotFoundError:
        return []


def _log_text(settings):
    try:
        return open(settings.log_path, encoding="utf-8").read()
    except FileNotFoundError:
        return ""


@pytest.mark.parametrize("path", CAPTIVE_PROBE_PATHS)
def test_probe_paths_redirect_to_portal(client, path):
    r = client.get(path)
    assert r.status_code == 302
    assert r.headers["Location"] == "http://192.168.4.1/portal"


def test_landing_page_uses_site_name(client, portal, settings):
    save_config(settings.config_path, None, PortalSettings(site_name="Cafe <Bar>"))
    portal.enter()
    r = client.get("/portal")
    body = r.get_data(as_text=True)
    assert r.status_code == 200
    assert "Cafe &lt;Bar&gt;" in body
    assert 'action="/submit-message"' in body


def test_unknown_path_serves_landing(client):
    r = client.get("/some/random/probe")
    assert r.status_code == 200
    assert 'action="/submit-message"' in r.get_data(as_text=True)


def test_submit_message_public_wall(client, settings):
    r = client.post("/submit-message", data={"msg": "  hello  "})
    assert r.status_code == 303
    assert r.headers["Location"].endswith("/portal")

    lines = _wall_lines(settings)
    assert re.fullmatch(r"\d\d:\d\d:\d\d\|hello", lines[0])
    log = _log_text(settings)
    assert "WALL:" in log and "hello" in log

    body = client.get("/portal").get_data(as_text=True)
    assert "hello" in body


def test_submit_message_stealth_mode(client, portal, settings):
    portal.save_settings("AP", "Site", public_wall=False)
    before = _wall_lines(settings)

    client.post("/submit-message", data={"msg": "secret"})

    assert _wall_lines(settings) == before
    log = _log_text(settings)
    assert "MSG: secret" in log
    assert "WALL:" not in log
    assert "secret" not in client.get("/portal").get_data(as_text=True)


def test_submit_message_truncates_and_ignores_empty(client, settings):
    client.post("/submit-message", data={"msg": "   "})
    client.post("/submit-message", data={})
    assert _wall_lines(settings) == []

    client.post("/submit-message", data={"msg": "x" * 500})
    (line,) = _wall_lines(settings)
    assert line.split("|", 1)[1] == "x" * 200


def test_wall_entries_are_escaped_on_landing(client):
    client.post("/submit-message", data={"msg": "<script>alert(1)</script>"})
    body = client.get("/portal").get_data(as_text=True)
    assert "<script>alert(1)" not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body


def test_admin_login_form_and_dashboard(client):
    assert "Admin login" in client.get("/admin").get_data(as_text=True)

    bad = client.post("/admin", data={"user": "admin", "pass": "nope"})
    assert bad.status_code == 200
    assert "Invalid credentials" in bad.get_data(as_text=True)

    ok = client.post("/admin", data=ADMIN)
    body = ok.get_data(as_text=True)
    assert "Dashboard" in body
    # credentials ride along in every admin form
    assert 'name="pass" value="portal123"' in body


@pytest.mark.parametrize("path", [
    "/log", "/exportlog", "/clearlog", "/clearwall", "/save-settings",
    "/editor", "/save-landing", "/reset-landing", "/save", "/reboot",
])
@pytest.mark.parametrize("creds", [{}, {"user": "admin"}, {"user": "admin", "pass": "x"}, {"user": "x", "pass": "portal123"}])
def test_admin_actions_require_credentials(client, path, creds, restarts):
    r = client.post(path, data=creds)
    assert r.status_code == 403
    assert restarts == []


def test_clearwall_forbidden_leaves_wall(client, settings):
    client.post("/submit-message", data={"msg": "keep me"})
    before = _wall_lines(settings)
    r = client.post("/clearwall", data={"user": "admin", "pass": "wrong"})
    assert r.status_code == 403
    assert _wall_lines(settings) == before


def test_clearwall_and_clearlog(client, settings):
    client.post("/submit-message", data={"msg": "bye"})
    assert client.post("/clearwall", data=ADMIN).status_code == 200
    assert _wall_lines(settings) == []

    assert client.post("/clearlog", data=ADMIN).status_code == 200
    assert _log_text(settings) == ""


def test_log_viewer_and_export(client):
    r = client.post("/log", data=ADMIN)
    assert "no log entries yet" in r.get_data(as_text=True)

    client.post("/submit-message", data={"msg": "a<b"})
    r = client.post("/log", data=ADMIN)
    assert "a&lt;b" in r.get_data(as_text=True)

    r = client.post("/exportlog", data=ADMIN)
    assert r.mimetype == "text/plain"
    assert "attachment" in r.headers["Content-Disposition"]
    assert "WALL: a<b" in r.get_data(as_text=True)


def test_save_settings_checkbox_absent_means_off(client, portal, settings):
    save_config(settings.config_path, Credentials("Net", "pw"), PortalSettings())

    r = client.post("/save-settings", data={**ADMIN, "ap_ssid": "Free", "site_name": "  "})
    assert r.status_code == 200
    assert portal.settings == PortalSettings(ap_name="Free", site_name="funnyportal", public_wall=False)

    lines = open(settings.config_path, encoding="utf-8").read().splitlines()
    assert lines == ["Net", "pw", "ap_ssid=Free", "site_name=funnyportal", "public_wall=0"]

    client.post("/save-settings", data={**ADMIN, "ap_ssid": "", "site_name": "Spot", "public_wall": "1"})
    assert portal.settings == PortalSettings(ap_name="SetupWiFi", site_name="Spot", public_wall=True)


def test_editor_shows_current_template(client):
    r = client.post("/editor", data=ADMIN)
    assert r.status_code == 200
    body = r.get_data(as_text=True)
    assert "%MESSAGE_SECTION%" in body
    assert 'action="/save-landing"' in body
    # the template is shown as text, not rendered
    assert "&lt;h1&gt;%SITE_NAME%&lt;/h1&gt;" in body


def test_save_landing_validation(client, settings):
    r = client.post("/save-landing", data={**ADMIN, "html": "<div>no root</div>"})
    assert r.status_code == 400

    r = client.post("/save-landing", data={**ADMIN, "html": "<html>" + "x" * 25000})
    assert r.status_code == 400

    assert not os.path.exists(settings.landing_path)


def test_save_landing_size_limit_is_inclusive(client, settings):
    # "é" is two bytes in UTF-8
    head = "<html>é"
    at_limit = head + "x" * (25000 - len(head.encode("utf-8")))
    assert len(at_limit.encode("utf-8")) == 25000

    r = client.post("/save-landing", data={**ADMIN, "html": at_limit + "x"})
    assert r.status_code == 400
    assert not os.path.exists(settings.landing_path)

    r = client.post("/save-landing", data={**ADMIN, "html": at_limit})
    assert r.status_code == 200
    assert os.path.getsize(settings.landing_path) == 25000


def test_custom_landing_then_reset(client, settings):
    html = "<HTML><body><h1>%SITE_NAME% custom</h1></body></HTML>"
    assert client.post("/save-landing", data={**ADMIN, "html": html}).status_code == 200

    body = client.get("/portal").get_data(as_text=True)
    assert "funnyportal custom" in body
    assert body.count('action="/submit-message"') == 1
    assert body.index('action="/submit-message"') < body.index("</body>")

    assert client.post("/reset-landing", data=ADMIN).status_code == 200
    assert "funnyportal custom" not in client.get("/portal").get_data(as_text=True)


def test_deploy_rejects_empty_ssid(client, settings, restarts):
    save_config(settings.config_path, Credentials("Old", "pw"), PortalSettings(site_name="S"))
    before = open(settings.config_path, "rb").read()

    r = client.post("/save", data={**ADMIN, "ssid": "   ", "password": "x"})
    assert r.status_code == 400
    assert open(settings.config_path, "rb").read() == before
    assert restarts == []


def test_deploy_saves_and_restarts(client, portal, settings, restarts):
    portal.save_settings("AP", "Site", public_wall=False)
    r = client.post("/save", data={**ADMIN, "ssid": " HomeNet ", "password": "secret"})
    assert r.status_code == 200

    lines = open(settings.config_path, encoding="utf-8").read().splitlines()
    assert lines == ["HomeNet", "secret", "ap_ssid=AP", "site_name=Site", "public_wall=0"]

    portal.restart_timer.join(2)
    assert restarts == ["restart"]


def test_reboot_restarts(client, portal, restarts):
    r = client.post("/reboot", data=ADMIN)
    assert r.status_code == 200
    portal.restart_timer.join(2)
    assert restarts == ["restart"]


def test_line_breaks_in_form_fields_keep_config_intact(client, portal, settings):
    r = client.post("/save-settings", data={**ADMIN, "ap_ssid": "Free", "site_name": "Cafe\nap_ssid=Evil"})
    assert r.status_code == 200
    assert portal.settings.site_name == "Cafe ap_ssid=Evil"

    r = client.post("/save", data={**ADMIN, "ssid": "Home\r\nNet", "password": "pw"})
    assert r.status_code == 200
    portal.restart_timer.join(2)

    lines = open(settings.config_path, encoding="utf-8").read().splitlines()
    assert lines == ["Home Net", "pw", "ap_ssid=Free", "site_name=Cafe ap_ssid=Evil", "public_wall=0"]
    assert portal.enter().ap_name == "Free"
