"""
Flask web application for the STEPS training-program uptake calculator.

Single-file app using render_template_string.  Run via ``python main.py``
which starts the dev server on localhost:5000.  All state (saved
scenarios, last result) lives in the AppState attached to the app.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, Optional, Tuple

from flask import (
    Blueprint,
    Flask,
    abort,
    current_app,
    redirect,
    render_template_string,
    request,
    send_file,
    url_for,
)

import config as cfg
from model import (
    ATTRIBUTE_LABELS,
    ATTRIBUTES,
    MissingSelectionError,
    Scenario,
    cost_from_slider,
    require_selections,
    slider_from_cost,
)
from session import AppState, DuplicateScenarioError, Evaluation
from cli import compute_display_data, fmt, pct
import report

logger = logging.getLogger(__name__)

bp = Blueprint("steps", __name__)

STATE_KEY = "STEPS_STATE"

# ═══════════════════════════════════════════════════════════════════
# Form parsing
# ═══════════════════════════════════════════════════════════════════

def parse_form(form: Dict[str, Any]) -> Tuple[Scenario, str]:
    """Parse the HTML form into a Scenario and QALY level.

    Raises MissingSelectionError when any attribute is unselected.
    """
    picks = require_selections(form)
    try:
        cohort = int(form.get("cohort_size") or cfg.COHORT_DEFAULT)
        slider = float(form.get("cost_slider") or cfg.COST_SLIDER_DEFAULT)
    except ValueError:
        raise ValueError("Cohort size and cost must be numbers") from None
    qaly = form.get("qaly_level") or cfg.QALY_DEFAULT
    scenario = Scenario.from_slider(cohort_size=cohort, cost_slider=slider, **picks)
    return scenario, qaly


def form_from_scenario(scenario: Scenario, qaly_level: str = cfg.QALY_DEFAULT) -> Dict[str, Any]:
    """Inverse of parse_form, used to load a saved scenario back."""
    form: Dict[str, Any] = {name: lvl.value for name, lvl in scenario.selections().items()}
    form["cohort_size"] = str(scenario.cohort_size)
    form["cost_slider"] = str(slider_from_cost(scenario.cost_per_participant))
    form["qaly_level"] = qaly_level
    return form


# ═══════════════════════════════════════════════════════════════════
# HTML Template
# ═══════════════════════════════════════════════════════════════════

HTML_TEMPLATE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>STEPS: Training Program Uptake Calculator</title>
<style>
  *{margin:0;padding:0;box-sizing:border-box}
  :root{
    --bg-deep:#050816;
    --bg-surface:rgba(15,23,42,0.55);
    --bg-input:rgba(8,11,22,0.85);
    --border-subtle:rgba(99,102,241,0.1);
    --text-primary:#f1f5f9;
    --text-secondary:#94a3b8;
    --text-muted:#64748b;
    --indigo:#818cf8;
    --indigo-deep:#6366f1;
    --violet:#8b5cf6;
    --emerald:#34d399;
    --emerald-deep:#10b981;
    --amber:#fbbf24;
    --red:#f87171;
    --radius-lg:16px;
    --radius-md:10px;
  }
  body{
    background:var(--bg-deep);color:var(--text-primary);
    font-family:'Inter',system-ui,-apple-system,sans-serif;line-height:1.6;
  }
  .container{max-width:1140px;margin:0 auto;padding:2rem 1.5rem}
  .hero{text-align:center;padding:1.5rem 0 2rem}
  .hero h1{
    font-size:clamp(1.5rem,4vw,2.3rem);font-weight:800;letter-spacing:-.03em;
    background:linear-gradient(135deg,#e2e8f0 0%,#818cf8 45%,#34d399 100%);
    -webkit-background-clip:text;-webkit-text-fill-color:transparent;background-clip:text;
  }
  .hero-sub{color:var(--text-secondary);margin-top:.5rem;font-size:.92rem}
  .card{
    background:var(--bg-surface);border:1px solid var(--border-subtle);
    border-radius:var(--radius-lg);padding:1.6rem;margin-bottom:1.4rem;
  }
  h2{font-size:1.05rem;font-weight:700;margin-bottom:1rem}
  .form-grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(240px,1fr));gap:1rem 1.5rem}
  fieldset{border:1px solid rgba(71,85,105,.35);border-radius:var(--radius-md);padding:.7rem .9rem}
  legend{font-size:.78rem;color:var(--text-secondary);padding:0 .3rem;font-weight:500}
  fieldset label{display:block;font-size:.88rem;padding:.1rem 0;cursor:pointer}
  .form-group{display:flex;flex-direction:column}
  .form-group label{font-size:.78rem;color:var(--text-secondary);margin-bottom:.3rem;font-weight:500}
  .form-group input[type=text],.form-group select{
    background:var(--bg-input);border:1px solid rgba(71,85,105,.35);border-radius:var(--radius-md);
    color:var(--text-primary);padding:.55rem .8rem;font-size:.88rem;font-family:inherit;
  }
  .slider-val{font-size:.85rem;color:var(--amber);font-weight:600}
  .btn{
    display:inline-flex;align-items:center;gap:.5rem;padding:.7rem 1.6rem;border:none;
    border-radius:var(--radius-md);font-size:.92rem;font-weight:600;cursor:pointer;
    font-family:inherit;text-decoration:none;color:#fff;
  }
  .btn-primary{background:linear-gradient(135deg,var(--indigo-deep),var(--violet))}
  .btn-success{background:linear-gradient(135deg,var(--emerald-deep),var(--emerald))}
  .btn-small{padding:.3rem .8rem;font-size:.78rem}
  .btn-danger{background:#b91c1c}
  .actions{margin-top:1.2rem;display:flex;gap:.8rem;flex-wrap:wrap;align-items:flex-end}
  .notice{
    background:rgba(245,158,11,.06);border:1px solid rgba(245,158,11,.25);
    border-radius:var(--radius-md);padding:.75rem 1rem;margin-bottom:1.4rem;
    font-size:.88rem;color:#fcd34d;
  }
  .notice.ok{background:rgba(16,185,129,.06);border-color:rgba(16,185,129,.25);color:var(--emerald)}
  .options-grid{display:grid;grid-template-columns:1fr 1fr;gap:1.4rem}
  @media(max-width:768px){.options-grid{grid-template-columns:1fr}}
  .stat-row{display:flex;justify-content:space-between;padding:.45rem 0;border-bottom:1px solid rgba(51,65,85,.3)}
  .stat-row:last-child{border-bottom:none}
  .stat-label{color:var(--text-secondary);font-size:.86rem}
  .stat-value{font-weight:600;font-size:.86rem;font-variant-numeric:tabular-nums}
  .neg{color:var(--red)}
  .uptake-big{font-size:2.2rem;font-weight:800;color:var(--emerald)}
  .table-wrap{overflow-x:auto;border-radius:var(--radius-md);border:1px solid rgba(51,65,85,.25)}
  table{width:100%;border-collapse:collapse;font-size:.84rem}
  th{text-align:left;padding:.6rem .8rem;background:rgba(15,23,42,.45);color:var(--text-secondary);
     font-size:.74rem;text-transform:uppercase;letter-spacing:.05em}
  td{padding:.5rem .8rem;border-bottom:1px solid rgba(51,65,85,.15)}
  td.num{text-align:right;font-variant-numeric:tabular-nums}
  .chart-img{width:100%;border-radius:var(--radius-md);margin-top:.5rem}
  .muted{color:var(--text-muted);font-size:.8rem}
  .footer{text-align:center;color:var(--text-muted);font-size:.78rem;padding:2rem 0}
  form.inline{display:inline}
</style>
</head>
<body>
<div class="container">

<div class="hero">
  <h1>STEPS: Training Program Uptake Calculator</h1>
  <p class="hero-sub">Discrete-choice uptake, cost-benefit and willingness-to-pay for training program designs</p>
</div>

{% if notice %}
<div class="notice {{ 'ok' if notice_ok }}">{{ notice }}</div>
{% endif %}

<div class="card">
  <h2>Program Design</h2>
  <form method="post" action="{{ url_for('steps.index') }}" id="steps-form">
    <div class="form-grid">
      {% for name, label, levels in attributes %}
      <fieldset>
        <legend>{{ label }}</legend>
        {% for lvl in levels %}
        <label><input type="radio" name="{{ name }}" value="{{ lvl }}" {{ 'checked' if form.get(name) == lvl }}> {{ lvl }}</label>
        {% endfor %}
      </fieldset>
      {% endfor %}
    </div>

    <div class="form-grid" style="margin-top:1.2rem">
      <div class="form-group">
        <label for="cohort_size">Cohort size: <span class="slider-val" id="cohort-size-value">{{ form.get('cohort_size', cfg.COHORT_DEFAULT) }}</span></label>
        <input type="range" id="cohort_size" name="cohort_size" min="{{ cfg.COHORT_MIN }}" max="{{ cfg.COHORT_MAX }}"
               value="{{ form.get('cohort_size', cfg.COHORT_DEFAULT) }}">
      </div>
      <div class="form-group">
        <label for="cost_slider">Cost per participant: <span class="slider-val" id="cost-value">{{ fmt(cost_label) }} (approx.)</span></label>
        <input type="range" id="cost_slider" name="cost_slider" min="0" max="{{ cfg.COST_SLIDER_MAX }}"
               value="{{ form.get('cost_slider', cfg.COST_SLIDER_DEFAULT) }}">
      </div>
      <div class="form-group">
        <label for="qaly_level">QALY gain per participant</label>
        <select id="qaly_level" name="qaly_level">
          {% for key, q in cfg.QALY_PER_PARTICIPANT.items() %}
          <option value="{{ key }}" {{ 'selected' if form.get('qaly_level', cfg.QALY_DEFAULT) == key }}>{{ key|capitalize }} ({{ q }})</option>
          {% endfor %}
        </select>
      </div>
    </div>

    <div class="actions">
      <button type="submit" class="btn btn-primary">View Results</button>
      <div class="form-group">
        <label for="scenario_name">Scenario name</label>
        <input type="text" id="scenario_name" name="scenario_name" placeholder="{{ default_name }}">
      </div>
      <button type="submit" class="btn btn-success" formaction="{{ url_for('steps.save_scenario') }}">Save Scenario</button>
    </div>
  </form>
</div>

{% if d %}
<div class="options-grid">
  <div class="card">
    <h2>Predicted Uptake</h2>
    <div class="uptake-big">{{ pct(d.uptake_pct) }}</div>
    <p class="muted" style="margin:.4rem 0 .8rem">{{ d.recommendation }}</p>
    <div class="stat-row"><span class="stat-label">Utility</span><span class="stat-value">{{ "%.3f"|format(d.utility) }}</span></div>
    <div class="stat-row"><span class="stat-label">Cohort size</span><span class="stat-value">{{ "{:,}".format(d.cohort_size) }}</span></div>
    <div class="stat-row"><span class="stat-label">Cost per participant</span><span class="stat-value">{{ fmt(d.cost_per_participant) }}</span></div>
  </div>

  <div class="card">
    <h2>Cost-Benefit Analysis</h2>
    <div class="stat-row"><span class="stat-label">Uptake</span><span class="stat-value">{{ pct(d.uptake_pct) }}</span></div>
    <div class="stat-row"><span class="stat-label">Participants</span><span class="stat-value">{{ "%.0f"|format(d.participants) }}</span></div>
    <div class="stat-row"><span class="stat-label">Total training cost</span><span class="stat-value">{{ fmt(d.total_cost) }}</span></div>
    <div class="stat-row"><span class="stat-label">Cost per participant</span><span class="stat-value">{{ fmt(d.cost_per_trainee, 2) }}</span></div>
    <div class="stat-row"><span class="stat-label">Total QALYs</span><span class="stat-value">{{ "%.2f"|format(d.total_qalys) }}</span></div>
    <div class="stat-row"><span class="stat-label">Monetised benefits</span><span class="stat-value">{{ fmt(d.monetized_benefit) }}</span></div>
    <div class="stat-row"><span class="stat-label">Total benefit</span><span class="stat-value">{{ fmt(d.total_benefit) }}</span></div>
    <div class="stat-row"><span class="stat-label">Net benefit</span><span class="stat-value {{ 'neg' if d.net_benefit < 0 }}">{{ fmt(d.net_benefit) }}</span></div>
  </div>
</div>

<div class="card">
  <h2>Willingness to Pay</h2>
  <div class="table-wrap">
    <table>
      <thead><tr><th>Attribute</th><th>WTP (USD)</th><th>SE (illustrative)</th></tr></thead>
      <tbody>
      {% for e in d.wtp %}
      <tr><td>{{ e.label }}</td><td class="num {{ 'neg' if e.wtp < 0 }}">{{ fmt(e.wtp) }}</td><td class="num">{{ fmt(e.standard_error) }}</td></tr>
      {% endfor %}
      </tbody>
    </table>
  </div>
</div>

{% for img in charts %}
<div class="card">
  <img class="chart-img" src="data:image/png;base64,{{ img }}" alt="Chart {{ loop.index }}">
</div>
{% endfor %}
{% endif %}

<div class="card">
  <h2>Saved Scenarios</h2>
  {% if saved %}
  <div class="table-wrap">
    <table>
      <thead><tr><th>Name</th><th>Training</th><th>Delivery</th><th>Accreditation</th><th>Location</th>
        <th>Cohort</th><th>Cost</th><th>Uptake</th><th>Net Benefit</th><th></th></tr></thead>
      <tbody>
      {% for s in saved %}
      <tr>
        <td>{{ s.name }}</td>
        <td>{{ s.scenario.training_level.value }}</td>
        <td>{{ s.scenario.delivery_method.value }}</td>
        <td>{{ s.scenario.accreditation.value }}</td>
        <td>{{ s.scenario.location.value }}</td>
        <td class="num">{{ s.scenario.cohort_size }}</td>
        <td class="num">{{ fmt(s.scenario.cost_per_participant) }}</td>
        <td class="num">{{ pct(s.predicted_uptake) }}</td>
        <td class="num {{ 'neg' if s.net_benefit < 0 }}">{{ fmt(s.net_benefit, 2) }}</td>
        <td>
          <a class="btn btn-primary btn-small" href="{{ url_for('steps.load_scenario', index=loop.index0) }}">Load</a>
          <form class="inline" method="post" action="{{ url_for('steps.delete_scenario', index=loop.index0) }}"
                onsubmit="return confirm('Are you sure you want to delete this scenario?')">
            <button type="submit" class="btn btn-danger btn-small">Delete</button>
          </form>
        </td>
      </tr>
      {% endfor %}
      </tbody>
    </table>
  </div>
  <div class="actions">
    <a href="{{ url_for('steps.download_pdf') }}" class="btn btn-success">Export Scenarios to PDF</a>
  </div>
  {% else %}
  <p class="muted">No scenarios saved yet.</p>
  {% endif %}
</div>

<div class="footer">Coefficients are fixed literature placeholders &middot; WTP error bars are illustrative</div>
</div>

<script>
(function(){
  var costMin={{ cfg.COST_MIN }}, costMax={{ cfg.COST_MAX }}, steps={{ cfg.COST_SLIDER_MAX }};
  var cohort=document.getElementById('cohort_size'), cohortVal=document.getElementById('cohort-size-value');
  var cost=document.getElementById('cost_slider'), costVal=document.getElementById('cost-value');
  cohort.addEventListener('input',function(){cohortVal.textContent=cohort.value;});
  cost.addEventListener('input',function(){
    var v=costMin+(costMax-costMin)*cost.value/steps;
    costVal.textContent='$'+Math.round(v).toLocaleString()+' (approx.)';
  });
})();
</script>
</body>
</html>
"""


# ═══════════════════════════════════════════════════════════════════
# Rendering
# ═══════════════════════════════════════════════════════════════════

def _state() -> AppState:
    return current_app.config[STATE_KEY]


def _render(
    form: Dict[str, Any],
    ev: Optional[Evaluation] = None,
    notice: str = "",
    notice_ok: bool = False,
) -> str:
    state = _state()
    saved = state.book.snapshot()
    try:
        cost_label = cost_from_slider(float(form.get("cost_slider", cfg.COST_SLIDER_DEFAULT)))
    except ValueError:
        cost_label = cost_from_slider(cfg.COST_SLIDER_DEFAULT)

    d = compute_display_data(ev) if ev is not None else None
    charts = report.get_web_charts(ev, saved) if ev is not None else []

    return render_template_string(
        HTML_TEMPLATE,
        form=form,
        d=d,
        charts=charts,
        saved=saved,
        notice=notice,
        notice_ok=notice_ok,
        default_name=state.book.next_default_name(),
        cost_label=cost_label,
        attributes=[(name, ATTRIBUTE_LABELS[name], [lvl.value for lvl in enum_cls])
                    for name, enum_cls in ATTRIBUTES.items()],
        cfg=cfg,
        fmt=fmt,
        pct=pct,
    )


def _evaluate_form(form: Dict[str, Any]) -> Evaluation:
    scenario, qaly = parse_form(form)
    return _state().evaluate(scenario, qaly)


# ═══════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════

@bp.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return _render({})

    form = request.form.to_dict()
    try:
        ev = _evaluate_form(form)
    except MissingSelectionError as exc:
        logger.info("Computation blocked: missing %s", exc.missing)
        return _render(form, notice=str(exc)), 400
    except ValueError as exc:
        logger.warning("Rejected input: %s", exc)
        return _render(form, notice=str(exc)), 400

    return _render(form, ev)


@bp.route("/scenarios/save", methods=["POST"])
def save_scenario():
    form = request.form.to_dict()
    state = _state()
    try:
        scenario, qaly = parse_form(form)
    except ValueError as exc:
        logger.warning("Save rejected: %s", exc)
        return _render(form, notice=str(exc)), 400

    # Save what is on screen; a re-evaluation would redraw the display noise.
    last = state.last
    if last is not None and last.scenario == scenario and last.qaly_level == qaly:
        ev = last
    else:
        ev = state.evaluate(scenario, qaly)

    try:
        saved = state.book.save(ev, form.get("scenario_name"))
    except DuplicateScenarioError as exc:
        return _render(form, ev, notice=str(exc)), 409

    return _render(form, ev, notice=f'Scenario "{saved.name}" saved successfully.',
                   notice_ok=True)


@bp.route("/scenarios/<int:index>/load")
def load_scenario(index: int):
    book = _state().book
    if not 0 <= index < len(book):
        abort(404)
    saved = book[index]
    form = form_from_scenario(saved.scenario, saved.qaly_level)
    ev = _state().evaluate(saved.scenario, saved.qaly_level)
    return _render(form, ev, notice=f'Loaded "{saved.name}".', notice_ok=True)


@bp.route("/scenarios/<int:index>/delete", methods=["POST"])
def delete_scenario(index: int):
    try:
        _state().book.delete(index)
    except IndexError:
        abort(404)
    return redirect(url_for("steps.index"))


@bp.route("/download-pdf")
def download_pdf():
    saved = _state().book.snapshot()
    if not saved:
        return "No scenarios saved to export.", 404
    buf = io.BytesIO()
    report.generate_pdf(saved, buf)
    buf.seek(0)
    return send_file(buf, mimetype="application/pdf", as_attachment=True,
                     download_name="Scenarios_Comparison.pdf")


# ═══════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════

def create_app(state: Optional[AppState] = None) -> Flask:
    """Build the Flask app around an application state object."""
    app = Flask(__name__)
    app.config[STATE_KEY] = state if state is not None else AppState()
    app.register_blueprint(bp)
    return app


def run_web(state: Optional[AppState] = None, debug: bool = True) -> None:
    """Start the Flask development server and open browser."""
    import webbrowser
    import threading

    app = create_app(state)
    print("Starting web app at http://localhost:5000")
    threading.Timer(1.0, lambda: webbrowser.open("http://localhost:5000")).start()
    # Reloader would start a second process with its own scenario list.
    app.run(host="127.0.0.1", port=5000, debug=debug, use_reloader=False)


if __name__ == "__main__":
    run_web()
