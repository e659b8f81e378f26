"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from birdnest.core.config import Config
from birdnest.core.executor import BUFFERED
from birdnest.core.models import ExecutionResult


class FakeExecutor:
    """Records every command instead of running it.

    Responses are keyed by the full argv tuple; anything unscripted exits 0
    with empty output.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def respond(self, argv, exit_code=0, stdout="", stderr=""):
        self.responses[tuple(argv)] = (exit_code, stdout, stderr)

    def run(self, command, args=(), options=BUFFERED):
        argv = [command, *args]
        self.calls.append((argv, options))
        exit_code, stdout, stderr = self.responses.get(tuple(argv), (0, "", ""))
        return ExecutionResult(argv=argv, exit_code=exit_code, stdout=stdout, stderr=stderr)

    @property
    def argvs(self):
        return [argv for argv, _ in self.calls]


class ScriptedPrompter:
    """Answers confirmation prompts from a fixed list and remembers the questions."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.questions = []

    def confirm(self, message):
        self.questions.append(message)
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


def fake_which(*present):
    """Build a shutil.which replacement that only knows the given executables."""
    calls = []

    def which(name):
        calls.append(name)
        return f"/usr/bin/{name}" if name in present else None

    which.calls = calls
    return which


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample(fixtures_dir):
    """Read a captured tool output by file name."""
    def _read(name: str) -> str:
        return (fixtures_dir / name).read_text()
    return _read


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Return a config path inside a temporary directory (not yet created)."""
    return tmp_path / "birdnest" / "config.json"
