"""Pytest configuration and shared fixtures."""
import os
import sys
from pathlib import Path
from unittest.mock import Mock
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from kubeship.kubectl import CommandStatus  # noqa: E402
from kubeship.output import OutputManager, set_output  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text()


def stub_kubectl(responses=None, success=True):
    """
    Build a ClusterClient mock answering by subcommand.

    responses maps either the full argument tuple or just the first kubectl
    argument (e.g. "api-resources") to its stdout, or to a (stdout, success)
    tuple. Unknown subcommands succeed with empty output.
    """
    responses = responses if responses is not None else {}

    def run(*args, **kwargs):
        answer = responses.get(args, responses.get(args[0], ""))
        if isinstance(answer, tuple):
            stdout, ok = answer
        else:
            stdout, ok = answer, success
        return stdout, "" if ok else "error: the server is unavailable", CommandStatus(0 if ok else 1)

    kubectl = Mock()
    kubectl.run.side_effect = run
    kubectl.client_available.return_value = True
    return kubectl


@pytest.fixture(autouse=True)
def fresh_output():
    """Give every test its own output manager."""
    set_output(OutputManager())
    yield


@pytest.fixture
def api_resources():
    return read_fixture("api_resources.txt")


@pytest.fixture
def api_resources_namespaced():
    return read_fixture("api_resources_namespaced.txt")


@pytest.fixture
def api_versions():
    return read_fixture("api_versions.txt")
