from flask import Blueprint, Flask, Response, abort, current_app, redirect, render_template_string, request

from portal import Portal
from store import uptime_hms
from templating import split_wall_record

# OS connectivity checks. Each one is bounced to the portal so the
# "sign in to network" sheet pops up.
CAPTIVE_PROBE_PATHS = (
    "/generate_204",            # Android / Chrome
    "/gen_204",
    "/hotspot-detect.html",     # Apple
    "/library/test/success.html",
    "/ncsi.txt",                # Windows
    "/connecttest.txt",
    "/redirect",
    "/fwlink",
    "/canonical.html",          # Firefox
    "/success.txt",
)

_MACROS = """
{% macro cred_inputs() -%}
  <input type="hidden" name="user" value="{{ user }}">
  <input type="hidden" name="pass" value="{{ password }}">
{%- endmacro %}
{% macro back_to_dashboard() -%}
  <form method="post" action="/admin" style="margin-top:18px;">
    {{ cred_inputs() }}
    <button type="submit">Back to dashboard</button>
  </form>
{%- endmacro %}
"""

_STYLE = """
  <style>
    body { font-family: system-ui; max-width: 900px; margin: 30px auto; padding: 0 14px; font-size: 14px; }
    fieldset { border: 1px solid #ccc; border-radius: 6px; margin: 16px 0; padding: 12px 16px; }
    legend { font-weight: 700; }
    label { display: block; margin: 8px 0; }
    input[type=text], input[type=password] { width: 100%; max-width: 360px; padding: 6px; }
    .row { display: flex; gap: 10px; flex-wrap: wrap; }
    .muted { color: #666; }
    .err { color: #b00020; font-weight: 600; }
    pre { background: #f6f8fa; padding: 12px; border-radius: 4px; white-space: pre-wrap; overflow-wrap: anywhere; }
    textarea { width: 100%; height: 420px; font-family: ui-monospace, SFMono-Regular, Menlo, monospace; font-size: 13px; }
    .wall-entry code { color: #888; margin-right: 8px; }
  </style>
"""

LOGIN_PAGE = """
<!doctype html><meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ site_name }} – Admin</title>
""" + _STYLE + """
<body>
  <h2>{{ site_name }} – Admin login</h2>
  {% if error %}
    <p class="err">Invalid credentials.</p>
  {% endif %}
  <form method="post" action="/admin">
    <label>User <input type="text" name="user" autocomplete="off"></label>
    <label>Password <input type="password" name="pass"></label>
    <button type="submit">Login</button>
  </form>
</body>
"""

ADMIN_PAGE = _MACROS + """
<!doctype html><meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ settings.site_name }} – Admin</title>
""" + _STYLE + """
<body>
  <h2 style="margin-bottom:4px;">{{ settings.site_name }} – Dashboard</h2>
  <p class="muted" style="margin-top:0;">
    AP <code>{{ settings.ap_name }}</code> on <code>{{ gateway_ip }}</code> ·
    uptime {{ uptime }} ·
    station target: <code>{{ stored_ssid or "(none)" }}</code>
  </p>

  <fieldset>
    <legend>Log ({{ log_lines }} lines)</legend>
    <div class="row">
      <form method="post" action="/log">{{ cred_inputs() }}<button type="submit">View log</button></form>
      <form method="post" action="/exportlog">{{ cred_inputs() }}<button type="submit">Export log</button></form>
      <form method="post" action="/clearlog">{{ cred_inputs() }}<button type="submit">Clear log</button></form>
    </div>
  </fieldset>

  <fieldset>
    <legend>Public wall ({{ wall|length }} / {{ max_wall }})</legend>
    <form method="post" action="/clearwall">{{ cred_inputs() }}<button type="submit">Clear wall</button></form>
    {% for ts, msg in wall %}
      <div class="wall-entry"><code>{{ ts }}</code>{{ msg }}</div>
    {% else %}
      <p class="muted">Wall is empty.</p>
    {% endfor %}
  </fieldset>

  <fieldset>
    <legend>Settings</legend>
    <form method="post" action="/save-settings">
      {{ cred_inputs() }}
      <label>AP name (broadcast after reboot)
        <input type="text" name="ap_ssid" value="{{ settings.ap_name }}">
      </label>
      <label>Site name
        <input type="text" name="site_name" value="{{ settings.site_name }}">
      </label>
      <label>
        <input type="checkbox" name="public_wall" value="1" {% if settings.public_wall %}checked{% endif %}>
        Show messages on the public wall
      </label>
      <button type="submit">Save settings</button>
    </form>
  </fieldset>

  <fieldset>
    <legend>Landing page {% if custom_landing %}(custom){% else %}(built-in){% endif %}</legend>
    <div class="row">
      <form method="post" action="/editor">{{ cred_inputs() }}<button type="submit">Edit landing page</button></form>
      <form method="post" action="/reset-landing">{{ cred_inputs() }}<button type="submit">Reset to default</button></form>
    </div>
  </fieldset>

  <fieldset>
    <legend>Deploy to network</legend>
    <p class="muted">Saves the credentials and reboots. The device joins this network from then on.</p>
    <form method="post" action="/save">
      {{ cred_inputs() }}
      <label>SSID <input type="text" name="ssid" value="{{ stored_ssid }}"></label>
      <label>Passphrase <input type="password" name="password"></label>
      <button type="submit">Save &amp; reboot</button>
    </form>
  </fieldset>

  <form method="post" action="/reboot">{{ cred_inputs() }}<button type="submit">Reboot</button></form>
</body>
"""

LOG_PAGE = _MACROS + """
<!doctype html><meta charset="utf-8">
<title>{{ site_name }} – Log</title>
""" + _STYLE + """
<body>
  <h2>Connection &amp; message log</h2>
  <pre>{{ log_text }}</pre>
  {{ back_to_dashboard() }}
</body>
"""

EDITOR_PAGE = _MACROS + """
<!doctype html><meta charset="utf-8">
<title>{{ site_name }} – Landing editor</title>
""" + _STYLE + """
<body>
  <h2>Landing page editor</h2>
  <p class="muted">
    Placeholders: <code>%SITE_NAME%</code>, <code>%MESSAGE_SECTION%</code>.
    Without <code>%MESSAGE_SECTION%</code> the message form is added before <code>&lt;/body&gt;</code>.
    Max {{ max_bytes }} bytes.
  </p>
  <form method="post" action="/save-landing">
    {{ cred_inputs() }}
    <textarea name="html">{{ landing_html }}</textarea>
    <br><button type="submit">Save landing page</button>
  </form>
  {{ back_to_dashboard() }}
</body>
"""

DONE_PAGE = _MACROS + """
<!doctype html><meta charset="utf-8">
<title>{{ title }}</title>
""" + _STYLE + """
<body>
  <h2>{{ title }}</h2>
  <p>{{ message }}</p>
  {% if not restarting %}
    {{ back_to_dashboard() }}
  {% endif %}
</body>
"""

bp = Blueprint("portal", __name__)


def _portal() -> Portal:
    return current_app.config["PORTAL"]

def _creds():
    return request.form.get("user"), request.form.get("pass")

def _require_admin_or_403():
    user, password = _creds()
    if not _portal().is_authorized(user, password):
        print(f"Forbidden {request.path} from {request.remote_addr}", flush=True)
        abort(403)

def _render_admin(template: str, **ctx):
    user, password = _creds()
    return render_template_string(
        template,
        user=user,
        password=password,
        site_name=_portal().settings.site_name,
        **ctx,
    )

def _done(title: str, message: str, restarting: bool = False):
    return _render_admin(DONE_PAGE, title=title, message=message, restarting=restarting)

def _dashboard():
    p = _portal()
    return _render_admin(
        ADMIN_PAGE,
        settings=p.settings,
        gateway_ip=p.s.gateway_ip,
        uptime=uptime_hms(),
        stored_ssid=p.stored_ssid(),
        log_lines=len(p.log.read_all()),
        wall=[split_wall_record(r) for r in p.wall.read_all()],
        max_wall=p.s.max_wall_entries,
        custom_landing=p.custom_landing() is not None,
    )


def captive_probe():
    return redirect(_portal().s.portal_url, code=302)

for _path in CAPTIVE_PROBE_PATHS:
    bp.add_url_rule(_path, endpoint="probe" + _path.replace("/", "_").replace(".", "_"),
                    view_func=captive_probe, methods=["GET"])


@bp.get("/portal")
def landing():
    return _portal().render_landing()

@bp.post("/submit-message")
def submit_message():
    msg = _portal().submit_message(request.form.get("msg"))
    if msg is not None:
        print(f"Message from {request.remote_addr} ({len(msg)} chars)", flush=True)
    return ("", 303, {"Location": "/portal"})


@bp.get("/admin")
def admin_login():
    return render_template_string(LOGIN_PAGE, site_name=_portal().settings.site_name, error=False)

@bp.post("/admin")
def admin():
    user, password = _creds()
    p = _portal()
    if not p.is_authorized(user, password):
        p.record(f"ADMIN: login failed from {request.remote_addr}")
        return render_template_string(LOGIN_PAGE, site_name=p.settings.site_name, error=True)
    return _dashboard()

@bp.post("/log")
def admin_log():
    _require_admin_or_403()
    return _render_admin(LOG_PAGE, log_text=_portal().log_text())

@bp.post("/exportlog")
def admin_export_log():
    _require_admin_or_403()
    return Response(
        _portal().log_text(),
        mimetype="text/plain",
        headers={"Content-Disposition": "attachment; filename=portal_log.txt"},
    )

@bp.post("/clearlog")
def admin_clear_log():
    _require_admin_or_403()
    if not _portal().clear_log():
        return "Could not clear log.", 500
    return _done("Log cleared", "The connection log has been deleted.")

@bp.post("/clearwall")
def admin_clear_wall():
    _require_admin_or_403()
    if not _portal().clear_wall():
        return "Could not clear wall.", 500
    return _done("Wall cleared", "All public wall messages have been deleted.")

@bp.post("/save-settings")
def admin_save_settings():
    _require_admin_or_403()

    ap_name = request.form.get("ap_ssid", "")
    site_name = request.form.get("site_name", "")
    # unchecked checkboxes are not submitted at all
    public_wall = request.form.get("public_wall") is not None

    if not _portal().save_settings(ap_name, site_name, public_wall):
        return "Could not save settings.", 500
    return _done("Settings saved", "The AP name takes effect after the next reboot.")

@bp.post("/editor")
def admin_editor():
    _require_admin_or_403()
    p = _portal()
    return _render_admin(EDITOR_PAGE, landing_html=p.landing_template(), max_bytes=p.s.landing_max_save_bytes)

@bp.post("/save-landing")
def admin_save_landing():
    _require_admin_or_403()
    p = _portal()

    html = request.form.get("html", "")
    err = p.check_landing(html)
    if err:
        return err, 400
    if not p.save_landing(html):
        return "Could not write landing page.", 500
    return _done("Landing page saved", "Visitors now see the custom landing page.")

@bp.post("/reset-landing")
def admin_reset_landing():
    _require_admin_or_403()
    if not _portal().reset_landing():
        return "Could not delete landing page.", 500
    return _done("Landing page reset", "Visitors now see the built-in landing page.")

@bp.post("/save")
def admin_deploy():
    _require_admin_or_403()
    p = _portal()

    ssid = (request.form.get("ssid", "") or "").strip()
    if not ssid:
        return "SSID must not be empty.", 400
    if not p.deploy(ssid, request.form.get("password", "")):
        return "Could not write configuration.", 500

    p.restart()
    return _done("Credentials saved", f"Rebooting and joining {ssid}...", restarting=True)

@bp.post("/reboot")
def admin_reboot():
    _require_admin_or_403()
    _portal().restart()
    return _done("Rebooting", "The device restarts in a moment.", restarting=True)


def _soft_404(_e):
    # Unknown paths still surface the portal (captive clients probe odd URLs).
    return _portal().render_landing(), 200


def create_app(portal: Portal) -> Flask:
    app = Flask(__name__)
    app.config["PORTAL"] = portal
    app.register_blueprint(bp)
    app.register_error_handler(404, _soft_404)
    app.register_error_handler(405, _soft_404)
    return app

