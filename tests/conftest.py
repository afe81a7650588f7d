import os
import sys
from pathlib import Path

import pytest

# Allow `import autorelease` when running tests from the repo root without installing the package.
PYTHON_ROOT = Path(__file__).resolve().parents[1] / 'src'
sys.path.insert(0, str(PYTHON_ROOT))


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep project config files and credentials of the host out of the tests."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name == 'GITHUB_TOKEN' or name.startswith('AUTORELEASE_'):
            monkeypatch.delenv(name, raising=False)
