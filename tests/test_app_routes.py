"""Regression tests for application route registration."""
from app.main import app


def _paths():
    return app.openapi()["paths"]


def test_api_routes_registered() -> None:
    expected = [
        ("/planner/suggestion", "get"),
        ("/planner/commit", "post"),
        ("/planner/move", "post"),
        ("/recovery/drift", "get"),
        ("/recovery/context", "get"),
        ("/recovery/run", "post"),
        ("/focus/sessions", "post"),
        ("/focus/today", "get"),
        ("/tasks/today", "get"),
        ("/tasks/upcoming", "get"),
        ("/tasks/stats", "get"),
        ("/tasks/efficiency", "get"),
        ("/goals/{goal_id}", "patch"),
        ("/goals/{goal_id}", "delete"),
    ]
    paths = _paths()
    for path, method in expected:
        assert method in paths.get(path, {}), f"{method.upper()} {path}"

