from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from unittest.mock import patch

import pytest

from operatorfit import mcp_server


@pytest.fixture()
def bound_scope(session):
    @contextmanager
    def _scope():
        yield session
    with patch.object(mcp_server, "session_scope", _scope):
        yield


class TestPreviewScore:
    @pytest.mark.parametrize("responses", [
        [{"value": 3}],
        [{"question_id": "first", "value": 3}],
        [{"question_id": None, "value": 3}],
        ["Q1=3"],
    ])
    def test_malformed_items_return_error(self, responses):
        with patch.object(mcp_server, "session_scope") as scope:
            out = mcp_server.preview_score(responses)
        assert "integer question_id" in out["error"]
        scope.assert_not_called()

    def test_scores_string_ids(self, bound_scope, full_responses):
        out = mcp_server.preview_score(
            [{"question_id": str(r.question_id), "value": r.value} for r in full_responses[:5]],
            applicant_name="Grace",
        )
        assert "Grace" in out["result"]["summary"]
        assert out["matches"] == []

    def test_duplicate_ids_return_error(self, bound_scope, full_responses):
        item = asdict(full_responses[0])
        out = mcp_server.preview_score([item, item])
        assert "Duplicate" in out["error"]
