# Ensure `import app` works whether tests are run from repo root or backend/
import os
import sys

import pytest

BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    """Empty collection file; the app is pointed at it through MOVIES_DATA_FILE."""
    path = tmp_path / "movies.json"
    path.write_text("[]", encoding="utf-8")
    monkeypatch.setenv("MOVIES_DATA_FILE", str(path))
    return path
