"""
Shared test fixtures: scripted Gemini client, recording sleeper, API client.

No test touches the network: every remote call goes through ScriptedClient,
which replays a list of outcomes (response text, None, or an exception).
"""

import json

import pytest
from fastapi.testclient import TestClient

from aegis.credentials import CredentialPool
from aegis.executor import RequestExecutor
from aegis.gemini_client import RemoteCallError
from aegis.generation import GenerationService
from aegis.main import app
from aegis.routers.analysis import get_service


def quota_error(message="Resource has been exhausted (e.g. check quota)."):
    return RemoteCallError(f"RESOURCE_EXHAUSTED: {message}", status=429)


def bad_request_error(message="Invalid JSON payload received."):
    return RemoteCallError(f"INVALID_ARGUMENT: {message}", status=400)


def valid_analysis(**overrides) -> dict:
    data = {
        "summary": "A steel I-beam carries the design load with margin.",
        "riskScore": 0.15,
        "verdict": "FEASIBLE",
        "domain": "Structural Integrity",
        "scores": {"physics": 95, "engineering": 88, "economics": 70, "safety": 90},
        "componentBreakdown": ["Flange", "Web"],
        "appliedPhysicsLaws": ["Euler-Bernoulli Beam Theory"],
        "keyCalculations": ["Stress = 120 MPa"],
        "manufacturability": {"rating": "High", "assessment": "Standard rolled section."},
        "violatedConstraints": ["None identified"],
        "failureModes": [
            {
                "scenario": "Lateral-torsional buckling",
                "probability": "Low",
                "impact": "Major",
                "mitigation": "Add lateral bracing",
            }
        ],
        "optimizations": ["Use a castellated web to reduce mass"],
        "reasoning": "Bending stress stays below **yield** at 250 MPa.",
    }
    data.update(overrides)
    return data


def blueprint_part(part_id="p1", **overrides) -> dict:
    part = {
        "id": part_id,
        "type": "box",
        "position": [0, 0.5, 0],
        "rotation": [0, 0, 0],
        "scale": [1, 1, 1],
        "color": "#3b82f6",
        "name": "Base",
    }
    part.update(overrides)
    return part


class ScriptedClient:
    """Stands in for GeminiClient. Each call consumes the next scripted outcome."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def generate_content(self, api_key, prompt, system_instruction=None, response_schema=None):
        self.calls.append({
            "api_key": api_key,
            "prompt": prompt,
            "system_instruction": system_instruction,
            "response_schema": response_schema,
        })
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def keys_used(self):
        return [c["api_key"] for c in self.calls]


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_service(sleeper):
    """Build a GenerationService over a scripted client and an in-memory pool."""
    def _make(keys, outcomes, deadline_seconds=None):
        client = ScriptedClient(outcomes)
        executor = RequestExecutor(CredentialPool(keys), sleep=sleeper)
        return GenerationService(client, executor, deadline_seconds=deadline_seconds)
    return _make


@pytest.fixture
def api_client():
    """TestClient whose generation service is swapped per test via .use(service)."""
    client = TestClient(app)

    def use(service):
        app.dependency_overrides[get_service] = lambda: service
        return client

    client.use = use
    yield client
    app.dependency_overrides.clear()


def as_text(data) -> str:
    return json.dumps(data)
