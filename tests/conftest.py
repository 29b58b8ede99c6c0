"""Shared fixtures for grcmap tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import pytest

from grcmap.models.control import Control, ParsedFramework
from grcmap.models.provider import CompletionResult


class FakeProvider:
    """Stand-in extraction provider that records calls instead of hitting the network."""

    name = "fake"
    source_tag = "fake"
    api_key_env = "FAKE_API_KEY"

    def __init__(self, result: Optional[CompletionResult] = None, configured: bool = True):
        self.result = result or CompletionResult(success=True, content="{}")
        self.configured = configured
        self.calls: list[tuple[str, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        self.calls.append((system_prompt, user_prompt))
        return self.result


@pytest.fixture
def fake_provider_factory():
    def factory(content: Optional[str] = None, success: bool = True, error: Optional[str] = None,
                configured: bool = True) -> FakeProvider:
        return FakeProvider(
            CompletionResult(success=success, content=content, error=error),
            configured=configured,
        )
    return factory


@pytest.fixture
def sample_csv() -> str:
    return (
        "control_id,category,title,description,control_type\n"
        "A.5.1,A.5,Policy,Top-level security policy,management\n"
        "A.5.2,A.5,Roles,Define roles,management\n"
    )


@pytest.fixture
def sample_framework_payload() -> dict:
    return {
        "name": "NIST Cybersecurity Framework",
        "version": "1.1",
        "description": "NIST CSF for critical infrastructure protection",
        "controls": [
            {
                "id": "ID.AM-1",
                "category": "Asset Management",
                "title": "Organizational and Information Assets",
                "description": "Develop and maintain an inventory of organizational and information assets.",
                "controlType": "management",
                "criticality": "high",
            },
            {
                "id": "PR.AC-1",
                "category": "Access Control",
                "title": "Physical Access Management",
                "description": "Limit physical access to organizational assets.",
                "controlType": "technical",
                "criticality": "critical",
                "relatedControls": ["ID.AM-1"],
                "objectives": ["Restrict access"],
            },
        ],
    }


@pytest.fixture
def sample_json(sample_framework_payload: dict) -> str:
    return json.dumps(sample_framework_payload)


@pytest.fixture
def custom_framework() -> ParsedFramework:
    """A small organization-specific control set."""
    return ParsedFramework(
        name="Acme Security Baseline",
        version="2.0",
        source="json_upload",
        controls=[
            Control(
                id="ACME-01",
                category="Crypto",
                title="Cryptographic key management",
                description="Generation, storage, archiving and destruction of cryptographic keys.",
                control_type="technical",
            ),
            Control(
                id="ACME-02",
                category="Logging",
                title="Event logging",
                description="Record user activities, exceptions and security-relevant events.",
                control_type="technical",
            ),
            Control(
                id="ACME-03",
                category="Facilities",
                title="Cafeteria menu rotation",
                description="Weekly lunch options posted on Mondays.",
                control_type="operational",
            ),
        ],
    )


@pytest.fixture
def project_with_config(tmp_path: Path) -> Path:
    """A project directory carrying a .grcmap/config.yaml."""
    project = tmp_path / "grc-project"
    (project / ".grcmap").mkdir(parents=True)
    (project / ".grcmap" / "config.yaml").write_text(
        "mapping:\n  threshold: 0.1\n  include_unmatched: true\n\nai:\n  provider: openai\n",
        encoding="utf-8",
    )
    return project
