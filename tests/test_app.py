# Tests for the Flask front end.

import pytest

from app import create_app, form_from_scenario, parse_form
from model import MissingSelectionError
from session import AppState

FORM = {
    "training_level": "Frontline",
    "delivery_method": "In-Person",
    "accreditation": "International",
    "location": "State-Level",
    "cohort_size": "1000",
    "cost_slider": "125",
    "qaly_level": "moderate",
}


@pytest.fixture
def app_state():
    return AppState()


@pytest.fixture
def client(app_state):
    app = create_app(app_state)
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def _save(client, name=""):
    return client.post("/scenarios/save", data={**FORM, "scenario_name": name})


def test_parse_form():
    scenario, qaly = parse_form(FORM)
    assert scenario.training_level.value == "Frontline"
    assert scenario.cohort_size == 1000
    assert scenario.cost_per_participant == pytest.approx(780.0)
    assert qaly == "moderate"


def test_parse_form_missing_selection():
    form = dict(FORM, location="")
    with pytest.raises(MissingSelectionError):
        parse_form(form)


def test_parse_form_bad_number():
    with pytest.raises(ValueError, match="numbers"):
        parse_form(dict(FORM, cohort_size="lots"))


def test_form_round_trip():
    scenario, _ = parse_form(FORM)
    form = form_from_scenario(scenario, "moderate")
    assert form == FORM


def test_index_page_has_no_default_selection(client):
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "STEPS: Training Program Uptake Calculator" in body
    assert "checked" not in body
    assert "No scenarios saved yet." in body


def test_compute_renders_results(client, app_state):
    resp = client.post("/", data=FORM)
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Predicted Uptake" in body
    assert "Training Level: Frontline" in body
    assert "data:image/png;base64," in body
    assert app_state.last is not None
    assert app_state.last.scenario.training_level.value == "Frontline"


def test_compute_blocked_without_selection(client, app_state):
    resp = client.post("/", data=dict(FORM, delivery_method=""))
    assert resp.status_code == 400
    assert "Please make a selection for: Delivery Method" in resp.get_data(as_text=True)
    assert app_state.last is None


def test_compute_rejects_out_of_range(client):
    resp = client.post("/", data=dict(FORM, cohort_size="5000"))
    assert resp.status_code == 400
    assert "Cohort size must be" in resp.get_data(as_text=True)


def test_save_and_duplicate(client, app_state):
    resp = _save(client, "Pilot")
    assert resp.status_code == 200
    assert "saved successfully" in resp.get_data(as_text=True)
    assert app_state.book.names() == ["Pilot"]

    resp = _save(client, "Pilot")
    assert resp.status_code == 409
    assert "already exists" in resp.get_data(as_text=True)
    assert len(app_state.book) == 1


def test_save_default_name(client, app_state):
    _save(client)
    _save(client)
    assert app_state.book.names() == ["Scenario 1", "Scenario 2"]


def test_save_blocked_without_selection(client, app_state):
    resp = client.post("/scenarios/save", data=dict(FORM, training_level=""))
    assert resp.status_code == 400
    assert len(app_state.book) == 0


def test_load_scenario(client):
    _save(client, "Pilot")
    resp = client.get("/scenarios/0/load")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Loaded" in body
    assert 'value="Frontline" checked' in body


def test_load_missing_scenario(client):
    assert client.get("/scenarios/3/load").status_code == 404


def test_delete_scenario(client, app_state):
    _save(client, "A")
    _save(client, "B")
    resp = client.post("/scenarios/0/delete")
    assert resp.status_code == 302
    assert app_state.book.names() == ["B"]
    assert client.post("/scenarios/7/delete").status_code == 404


def test_pdf_download(client):
    assert client.get("/download-pdf").status_code == 404
    _save(client, "A")
    resp = client.get("/download-pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert "Scenarios_Comparison.pdf" in resp.headers["Content-Disposition"]


def test_load_restores_qaly_level(client, app_state):
    client.post("/scenarios/save", data={**FORM, "qaly_level": "high", "scenario_name": "H"})
    resp = client.get("/scenarios/0/load")
    assert resp.status_code == 200
    assert app_state.last.qaly_level == "high"
    assert app_state.last.cost_benefit.qaly_per_participant == 0.08
    assert 'value="high" selected' in resp.get_data(as_text=True)


def test_save_keeps_displayed_uptake():
    draws = iter([5.0, -5.0])
    state = AppState(noise=lambda: next(draws))
    app = create_app(state)
    app.config["TESTING"] = True
    with app.test_client() as c:
        c.post("/", data=FORM)
        shown = state.last.uptake.percent
        c.post("/scenarios/save", data={**FORM, "scenario_name": "Shown"})
    assert state.book[0].predicted_uptake == shown


def test_save_evaluates_changed_form(client, app_state):
    client.post("/", data=FORM)
    client.post("/scenarios/save", data={**FORM, "training_level": "Advanced",
                                         "scenario_name": "Changed"})
    saved = app_state.book[0]
    assert saved.scenario.training_level.value == "Advanced"
    assert app_state.last.scenario.training_level.value == "Advanced"
