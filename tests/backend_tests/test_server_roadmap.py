"""
Tests for the roadmap HTTP surface.

These tests use the real Flask test client against the bundled data/ directory,
so they exercise the full request→response pipeline.
"""

import json
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "backend"))

import server

TRANSITIVE_BODY = {
    "courses": [
        {"id": 1, "name": "Intro", "difficulty": "beginner", "price": None, "isPublished": True, "prerequisites": []},
        {"id": 2, "name": "Middle", "difficulty": "intermediate", "price": 10, "isPublished": True, "prerequisites": [1]},
        {"id": 3, "name": "Advanced", "difficulty": "advanced", "price": 20, "isPublished": True, "prerequisites": [2]},
    ],
    "enrollments": [{"courseId": 1, "completion": 100}],
    "recommendations": [{"forEnrolledCourseId": 1, "candidateCourseIds": [3]}],
}


@pytest.fixture(scope="module")
def client():
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


def post_roadmap(client, payload, path="/roadmap"):
    resp = client.post(
        path,
        data=json.dumps(payload),
        content_type="application/json",
    )
    return resp.status_code, resp.get_json()


def path_ids(data):
    return ["-".join(str(n["course_id"]) for n in path) for path in data["paths"]]


# ── Health / headers ────────────────────────────────────────────────────────

class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert "version" in data
        assert data["courses_loaded"] == 10

    def test_api_alias(self, client):
        assert client.get("/api/health").status_code == 200

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers.get("X-Frame-Options") == "DENY"
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Referrer-Policy") == "same-origin"


class TestCoursesEndpoint:
    def test_lists_loaded_catalog(self, client):
        data = client.get("/courses").get_json()
        assert [c["course_id"] for c in data["courses"]] == list(range(1, 11))
        algorithms = data["courses"][3]
        assert algorithms["prerequisites"] == [2, 3]
        assert algorithms["difficulty"] == "intermediate"


# ── POST /roadmap ───────────────────────────────────────────────────────────

class TestRoadmapEndpoint:
    def test_transitive_recommendation_nested(self, client):
        status, data = post_roadmap(client, TRANSITIVE_BODY)
        assert status == 200
        assert path_ids(data) == ["1-2-3"]
        root = data["forest"][0]
        assert root["status"] == "completed"
        leaf = root["children"][0]["children"][0]
        assert leaf["course_id"] == 3
        assert leaf["is_recommended"] is True
        assert leaf["children"] == []

    def test_api_alias(self, client):
        status, data = post_roadmap(client, TRANSITIVE_BODY, path="/api/roadmap")
        assert status == 200
        assert path_ids(data) == ["1-2-3"]

    def test_empty_enrollments(self, client):
        body = dict(TRANSITIVE_BODY, enrollments=[])
        status, data = post_roadmap(client, body)
        assert status == 200
        assert data == {"forest": [], "paths": [], "unrooted_course_ids": []}

    def test_diamond(self, client):
        body = {
            "courses": [
                {"id": 1},
                {"id": 2, "prerequisites": [1]},
                {"id": 3, "prerequisites": [1]},
                {"id": 4, "prerequisites": [2, 3]},
            ],
            "enrollments": [{"course_id": 1, "completion": 100}],
        }
        status, data = post_roadmap(client, body)
        assert status == 200
        assert path_ids(data) == ["1-2-4", "1-3-4"]

    def test_cyclic_catalog_does_not_error(self, client):
        body = {
            "courses": [{"id": 1}, {"id": 2, "prerequisites": [1, 3]}, {"id": 3, "prerequisites": [2]}],
            "enrollments": [{"course_id": 1}],
        }
        status, data = post_roadmap(client, body)
        assert status == 200
        assert path_ids(data) == ["1-2-3"]

    def test_deterministic(self, client):
        _, first = post_roadmap(client, TRANSITIVE_BODY)
        _, second = post_roadmap(client, TRANSITIVE_BODY)
        assert first == second


class TestRoadmapInputValidation:
    def test_invalid_json_returns_400(self, client):
        resp = client.post("/roadmap", data="not-json", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["error_code"] == "INVALID_INPUT"

    def test_missing_course_id_returns_400(self, client):
        status, data = post_roadmap(client, {"courses": [{"name": "x"}]})
        assert status == 400
        assert data["mode"] == "error"
        assert "'id' is required" in data["error"]["message"]

    def test_completion_out_of_range_returns_400(self, client):
        body = dict(TRANSITIVE_BODY, enrollments=[{"courseId": 1, "completion": 150}])
        status, data = post_roadmap(client, body)
        assert status == 400
        assert "completion" in data["error"]["message"]

    def test_non_object_body_returns_400(self, client):
        status, data = post_roadmap(client, [1, 2, 3])
        assert status == 400


# ── GET /learners/<id>/roadmap ──────────────────────────────────────────────

class TestLearnerRoadmapEndpoint:
    def test_bundled_learner_paths(self, client):
        resp = client.get("/learners/u1/roadmap")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["learner_id"] == "u1"
        assert path_ids(data) == ["1-2-4", "1-2-6-7", "1-3-4", "1-3-5-8", "9-7", "10"]

    def test_bundled_learner_statuses(self, client):
        data = client.get("/api/learners/u1/roadmap").get_json()
        status_by_id = {}
        for path in data["paths"]:
            for node in path:
                status_by_id[node["course_id"]] = node["status"]
        assert status_by_id[1] == "completed"
        assert status_by_id[2] == "enrolled"
        assert status_by_id[3] == "recommended"
        assert status_by_id[4] == "locked"
        assert status_by_id[7] == "recommended"
        assert status_by_id[8] == "locked"

    def test_unknown_learner_gets_empty_roadmap(self, client):
        data = client.get("/learners/nobody/roadmap").get_json()
        assert data["forest"] == []
        assert data["paths"] == []

    def test_feed_failure_degrades(self, client, monkeypatch):
        def broken_feed(_course_id):
            raise RuntimeError("feed down")

        monkeypatch.setattr(server, "_feed", broken_feed)
        resp = client.get("/learners/u1/roadmap")
        assert resp.status_code == 200
        data = resp.get_json()
        # Without recommendations, 7 is no longer a dependent course.
        statuses = {n["course_id"]: n["status"] for path in data["paths"] for n in path}
        assert statuses[7] == "locked"
        assert statuses[1] == "completed"

    def test_feed_stream_breaking_midway_degrades(self, client, monkeypatch):
        def flaky_feed(course_id):
            yield 3
            raise RuntimeError("stream broke")

        monkeypatch.setattr(server, "_feed", flaky_feed)
        resp = client.get("/learners/u1/roadmap")
        assert resp.status_code == 200
        statuses = {n["course_id"]: n["status"] for path in resp.get_json()["paths"] for n in path}
        assert statuses[7] == "locked"


# ── Error handling ──────────────────────────────────────────────────────────

class TestErrorHandling:
    def test_unknown_api_route_404(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_unexpected_error_returns_500(self, client, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("engine exploded")

        monkeypatch.setattr(server, "build_roadmap", boom)
        status, data = post_roadmap(client, TRANSITIVE_BODY)
        assert status == 500
        assert data["error"]["error_code"] == "SERVER_ERROR"

    def test_method_not_allowed_keeps_status(self, client):
        assert client.get("/roadmap").status_code == 405
