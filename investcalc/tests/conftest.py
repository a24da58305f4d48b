import pathlib
import sys

import pytest
from flask.testing import FlaskClient

# Ensure the repo root is on sys.path whether pytest is run from the repo root or investcalc/
REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from investcalc.app import create_app  # noqa: E402  # path injected above


@pytest.fixture()
def app(tmp_path):
    flask_app = create_app({"TESTING": True, "EXPORT_DIR": str(tmp_path / "exports")})
    yield flask_app
    flask_app.extensions["export_jobs"].shutdown(wait=True)


@pytest.fixture()
def client(app) -> FlaskClient:
    with app.test_client() as test_client:
        yield test_client
