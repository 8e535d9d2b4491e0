import json
from typing import Any, Dict

import pytest

from tests.factories import make_project_payload


@pytest.fixture
def project_payload() -> Dict[str, Any]:
    return make_project_payload()


@pytest.fixture
def feed_file(tmp_path, project_payload):
    path = tmp_path / "projects.json"
    path.write_text(json.dumps([project_payload]), encoding="utf-8")
    return path
