"""Tests for the HTTP API, request models and CLI.

Uses FastAPI's TestClient against an application built from explicit
settings, so nothing depends on the process environment.
"""

import json
import math

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from homereason.__main__ import main
from homereason.errors import RuleSafetyViolation
from homereason.schema import BackwardRequest, SensorFacts
from homereason.service import ReasonerSettings, create_app

UI_FACTS = {
    "motion_detected": True,
    "night_time": True,
    "temperatures": [["LivingRoom", 17.0], ["Bedroom", 19.5]],
    "energy_usage_high": False,
}


@pytest.fixture
def client():
    app = create_app(ReasonerSettings(rules_path=None, rule_modules=["smart_home"]))
    with TestClient(app) as c:
        yield c


# ==============================================================================
# Request Model Tests
# ==============================================================================


class TestSensorFacts:
    """Test sensor payload validation and conversion."""

    def test_to_literals(self):
        """Flags come first, then one Temperature literal per reading."""
        facts = SensorFacts.model_validate(UI_FACTS)
        assert [str(lit) for lit in facts.to_literals()] == [
            "MotionDetected(true)",
            "NightTime(true)",
            "EnergyUsageHigh(false)",
            "Temperature(LivingRoom,17.0)",
            "Temperature(Bedroom,19.5)",
        ]

    def test_defaults(self):
        facts = SensorFacts()
        assert [str(lit) for lit in facts.to_literals()] == [
            "MotionDetected(false)",
            "NightTime(false)",
            "EnergyUsageHigh(false)",
        ]

    def test_integer_temperature_becomes_float(self):
        facts = SensorFacts.model_validate({"temperatures": [["Kitchen", 20]]})
        assert facts.temperatures == [("Kitchen", 20.0)]
        assert str(facts.to_literals()[-1]) == "Temperature(Kitchen,20.0)"

    def test_room_names_needing_quotes(self):
        facts = SensorFacts.model_validate({"temperatures": [["Living Room", 17.5]]})
        assert str(facts.to_literals()[-1]) == 'Temperature("Living Room",17.5)'

    @pytest.mark.parametrize(
        "payload",
        [
            {"motion_detected": "yes"},
            {"night_time": "true"},
            {"energy_usage_high": 1},
            {"temperatures": [["Bedroom", "15"]]},
            {"temperatures": [["Bedroom", True]]},
            {"temperatures": [["", 15.0]]},
            {"temperatures": [["Bedroom"]]},
            {"temperatures": [["Bedroom", float("nan")]]},
            {"temperatures": [["Bedroom", math.inf]]},
            {"temperatures": [["Bedroom", 10**400]]},
            {"temperatures": [["\ud800", 15.0]]},
            {"humidity": 40},
        ],
    )
    def test_rejects_invalid(self, payload):
        with pytest.raises(ValidationError):
            SensorFacts.model_validate(payload)

    def test_goal_required(self):
        with pytest.raises(ValidationError):
            BackwardRequest.model_validate({"facts": {}, "goal": ""})


# ==============================================================================
# Forward Endpoint Tests
# ==============================================================================


class TestForwardEndpoint:
    """Test POST /reason/forward."""

    def test_ui_default_payload(self, client):
        response = client.post("/reason/forward", json={"facts": UI_FACTS})

        assert response.status_code == 200
        data = response.json()
        assert data["initial_facts"] == [
            "MotionDetected(true)",
            "NightTime(true)",
            "EnergyUsageHigh(false)",
            "Temperature(LivingRoom,17.0)",
            "Temperature(Bedroom,19.5)",
        ]
        assert data["inferred_facts"] == ["Occupied(Home)", "ColdRoom(LivingRoom)"]
        assert data["actions"] == ["TurnOn(Lights)", "TurnOn(Heater)"]
        assert len(data["trace"]) == 4
        assert any("Room=LivingRoom, T=17.0" in line for line in data["trace"])

    def test_requests_are_independent(self, client):
        """Facts from one request never leak into the next."""
        client.post("/reason/forward", json={"facts": UI_FACTS})
        response = client.post("/reason/forward", json={"facts": {}})

        assert response.json()["actions"] == []
        assert response.json()["inferred_facts"] == []

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"facts": {"motion_detected": "yes"}},
            {"facts": {"temperatures": [["Bedroom", "cold"]]}},
            {"facts": {"unknown": True}},
            {"facts": {"temperatures": [["Bedroom", 15.0, "C"]]}},
        ],
    )
    def test_invalid_payload(self, client, body):
        response = client.post("/reason/forward", json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_REQUEST"

    @pytest.mark.parametrize(
        "raw",
        [
            b"{not json",
            b'{"facts": {"temperatures": [["Bedroom", 1' + b"0" * 400 + b"]]}}",
            b'{"facts": {"temperatures": [["\\ud800", 15.0]]}}',
        ],
    )
    def test_unusable_body(self, client, raw):
        """Bodies that decode to unusable values get a 422 envelope."""
        response = client.post(
            "/reason/forward",
            content=raw,
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_REQUEST"

    def test_pass_cap_is_server_error(self):
        app = create_app(ReasonerSettings(max_forward_passes=1))
        with TestClient(app) as c:
            response = c.post("/reason/forward", json={"facts": UI_FACTS})

        assert response.status_code == 500
        assert response.json()["code"] == "ENGINE_LIMIT_EXCEEDED"


# ==============================================================================
# Backward Endpoint Tests
# ==============================================================================


class TestBackwardEndpoint:
    """Test POST /reason/backward."""

    def test_provable_goal(self, client):
        response = client.post(
            "/reason/backward",
            json={"facts": UI_FACTS, "goal": "TurnOn(Heater)"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["goal"] == "TurnOn(Heater)"
        assert data["provable"] is True
        assert data["proof"][0] == {
            "goal": "TurnOn(Heater)",
            "rule_used": "heater_on_cold_room",
            "satisfied_by": ["Temperature(LivingRoom,17.0)", "LessThan(17.0,18)"],
            "depth": 0,
        }
        assert [step["depth"] for step in data["proof"]] == [0, 1, 1]

    def test_goal_text_is_normalized(self, client):
        response = client.post(
            "/reason/backward",
            json={"facts": UI_FACTS, "goal": "  TurnOn( Lights )"},
        )
        assert response.json()["goal"] == "TurnOn(Lights)"
        assert response.json()["provable"] is True

    def test_unprovable_goal(self, client):
        response = client.post(
            "/reason/backward",
            json={"facts": UI_FACTS, "goal": "Alert(User)"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "goal": "Alert(User)",
            "provable": False,
            "proof": [
                {"goal": "Alert(User)", "rule_used": None, "satisfied_by": [], "depth": 0}
            ],
        }

    @pytest.mark.parametrize(
        "goal",
        ["TurnOn(", "TurnOn(?Device)", "42", "TurnOn(Heater) x", "Temperature(X,1e999)"],
    )
    def test_malformed_goal(self, client, goal):
        response = client.post("/reason/backward", json={"facts": UI_FACTS, "goal": goal})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "MALFORMED_INPUT"
        assert data["detail"]

    def test_unencodable_goal(self, client):
        response = client.post(
            "/reason/backward",
            content=b'{"facts": {}, "goal": "Room(\\ud800)"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "MALFORMED_INPUT"

    def test_missing_goal(self, client):
        response = client.post("/reason/backward", json={"facts": UI_FACTS})
        assert response.status_code == 422


# ==============================================================================
# Rules / Health Endpoint Tests
# ==============================================================================


class TestInfoEndpoints:
    """Test GET /rules and GET /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["rules_loaded"] == 10
        assert data["rule_source"]

    def test_rules(self, client):
        data = client.get("/rules").json()

        assert data["actions"] == ["Alert", "Dim", "TurnOff", "TurnOn"]
        assert len(data["rules"]) == 10
        heater = next(r for r in data["rules"] if r["id"] == "heater_on_cold_room")
        assert heater["antecedents"] == ["Temperature(?Room,?T)", "LessThan(?T,18)"]
        assert heater["consequent"] == "TurnOn(Heater)"
        assert heater["action"] is True

    def test_cors_preflight(self, client):
        response = client.options(
            "/reason/forward",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestAppFactory:
    """Test application construction."""

    def test_custom_rule_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(
            json.dumps(
                {
                    "actions": ["Alert"],
                    "rules": [
                        {
                            "id": "freezer_warm",
                            "antecedents": ["Temperature(Freezer, ?T)", "GreaterThan(?T, -10)"],
                            "consequent": "Alert(Freezer)",
                        }
                    ],
                }
            )
        )
        app = create_app(ReasonerSettings(rules_path=str(path)))

        with TestClient(app) as c:
            data = c.post(
                "/reason/forward",
                json={"facts": {"temperatures": [["Freezer", -4.0]]}},
            ).json()

        assert data["actions"] == ["Alert(Freezer)"]

    def test_unsafe_rule_file_fails_fast(self, tmp_path):
        path = tmp_path / "unsafe.json"
        path.write_text(
            json.dumps(
                {
                    "rules": [
                        {
                            "id": "unsafe",
                            "antecedents": ["NightTime(true)"],
                            "consequent": "TurnOn(?Device)",
                        }
                    ]
                }
            )
        )
        with pytest.raises(RuleSafetyViolation):
            create_app(ReasonerSettings(rules_path=str(path)))


# ==============================================================================
# CLI Tests
# ==============================================================================


class TestCLI:
    """Test the command-line interface."""

    @pytest.fixture
    def facts_file(self, tmp_path):
        path = tmp_path / "facts.json"
        path.write_text(json.dumps(UI_FACTS))
        return str(path)

    def test_forward(self, facts_file, capsys):
        assert main(["forward", "--facts", facts_file]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["actions"] == ["TurnOn(Lights)", "TurnOn(Heater)"]

    def test_prove_tree(self, facts_file, capsys):
        assert main(["prove", "TurnOn(Heater)", "--facts", facts_file, "--tree"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0] == "TurnOn(Heater) (by rule heater_on_cold_room)"
        assert out[-1] == "provable: true"

    def test_rules(self, capsys):
        assert main(["rules"]) == 0

        out = capsys.readouterr().out
        assert "heater_on_cold_room: TurnOn(Heater) <= " in out
        assert "[action]" in out

    def test_bad_goal(self, facts_file, capsys):
        assert main(["prove", "TurnOn(", "--facts", facts_file]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_bad_facts(self, tmp_path, capsys):
        path = tmp_path / "facts.json"
        path.write_text(json.dumps({"motion_detected": "yes"}))

        assert main(["forward", "--facts", str(path)]) == 1
