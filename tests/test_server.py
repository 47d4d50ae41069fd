"""Tests for the read-only lecture archive HTTP API.

WHY: The web player depends on these endpoints for listing lectures,
highlighting words during playback, and jumping to search hits. Status
codes and response shapes are its contract.

HOW: The conftest lecture tree is uploaded into a fresh SQLite database,
then every endpoint is exercised through FastAPI's TestClient. Search
runs on the non-PostgreSQL fallback.

RULES:
- All tests use the FastAPI TestClient (synchronous)
- Each test gets its own database through the ``database`` fixture
- Tests cover: happy paths, 404 not found, 422 validation errors
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_TEXT
from lecture_archive import __version__
from lecture_archive.ingest import upload_all
from lecture_archive.server.app import app


@pytest.fixture
def client(database):
    return TestClient(app)


@pytest.fixture
def uploaded(database, lecture_tree):
    """Upload the two-lecture tree with two words per segment."""
    results = upload_all(lecture_tree / "lectures", lecture_tree, max_words_per_segment=2)
    return {"first": results[0].lecture_id, "second": results[1].lecture_id}


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


class TestTopics:

    def test_empty_database(self, client):
        resp = client.get("/topics")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list_topics(self, client, uploaded):
        body = client.get("/topics").json()
        assert [t["name"] for t in body] == ["Терпение"]

    def test_topic_lectures(self, client, uploaded):
        topic_id = client.get("/topics").json()[0]["id"]
        resp = client.get("/topics/{}/lectures".format(topic_id))
        assert resp.status_code == 200
        assert [lec["order"] for lec in resp.json()] == [1, 2]

    def test_topic_lectures_paging(self, client, uploaded):
        topic_id = client.get("/topics").json()[0]["id"]
        resp = client.get("/topics/{}/lectures".format(topic_id), params={"limit": 1, "offset": 1})
        assert resp.status_code == 200
        assert [lec["order"] for lec in resp.json()] == [2]

    def test_topic_lectures_limit_bounds(self, client, uploaded):
        topic_id = client.get("/topics").json()[0]["id"]
        assert client.get("/topics/{}/lectures".format(topic_id), params={"limit": 101}).status_code == 422
        assert client.get("/topics/{}/lectures".format(topic_id), params={"limit": 0}).status_code == 422

    def test_unknown_topic(self, client, uploaded):
        resp = client.get("/topics/9999/lectures")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Topic not found: 9999"


# ---------------------------------------------------------------------------
# Lectures
# ---------------------------------------------------------------------------


class TestLectures:

    def test_list_lectures(self, client, uploaded):
        body = client.get("/lectures").json()
        assert body["total"] == 2
        first = body["items"][0]
        assert first["title"] == "Беседа №1"
        assert first["src"] == "/lectures/Терпение/lecture 1/audio.mp3"
        assert first["duration"] == pytest.approx(2.10)
        assert "full_text" not in first

    def test_list_lectures_paging(self, client, uploaded):
        body = client.get("/lectures", params={"limit": 1, "offset": 1}).json()
        assert body["total"] == 2
        assert [lec["title"] for lec in body["items"]] == ["Беседа №2"]

    def test_list_lectures_topic_filter(self, client, uploaded):
        body = client.get("/lectures", params={"topic_id": 9999}).json()
        assert body == {"total": 0, "items": []}

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
    def test_invalid_paging(self, client, params):
        assert client.get("/lectures", params=params).status_code == 422

    def test_get_lecture(self, client, uploaded):
        resp = client.get("/lectures/{}".format(uploaded["first"]))
        assert resp.status_code == 200
        assert resp.json()["full_text"] == SAMPLE_TEXT

    def test_get_unknown_lecture(self, client, uploaded):
        resp = client.get("/lectures/9999")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Lecture not found: 9999"}

    def test_segments(self, client, uploaded):
        body = client.get("/lectures/{}/segments".format(uploaded["first"])).json()
        assert [s["text"] for s in body] == ["Сегодня мы", "говорим о", "терпении."]
        assert [(s["start_position"], s["end_position"]) for s in body] == [(0, 2), (3, 6), (7, 8)]

    def test_segments_of_unknown_lecture(self, client, uploaded):
        assert client.get("/lectures/9999/segments").status_code == 404


class TestWords:

    def test_all_words(self, client, uploaded):
        body = client.get("/lectures/{}/words".format(uploaded["first"])).json()
        assert len(body) == 9
        assert body[0] == {"position": 0, "text": "Сегодня", "type": "word", "start": 0.12, "end": 0.58}

    def test_time_window(self, client, uploaded):
        body = client.get(
            "/lectures/{}/words".format(uploaded["first"]), params={"start": 1.42, "end": 3.0}
        ).json()
        assert [w["text"] for w in body] == [" ", "терпении."]

    def test_start_after_end(self, client, uploaded):
        resp = client.get("/lectures/{}/words".format(uploaded["first"]), params={"start": 2, "end": 1})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "start must not be after end"

    def test_negative_start(self, client, uploaded):
        resp = client.get("/lectures/{}/words".format(uploaded["first"]), params={"start": -1})
        assert resp.status_code == 422

    def test_unknown_lecture(self, client, uploaded):
        assert client.get("/lectures/9999/words").status_code == 404


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearch:

    def test_segment_search(self, client, uploaded):
        resp = client.get("/search", params={"q": "говорим"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["query"] == "говорим"
        assert len(body["hits"]) == 1
        hit = body["hits"][0]
        assert hit["lecture_id"] == uploaded["first"]
        assert hit["lecture_title"] == "Беседа №1"
        assert hit["start_time"] == pytest.approx(0.80)
        assert hit["snippet"] == "говорим о"

    def test_query_is_trimmed(self, client, uploaded):
        body = client.get("/search", params={"q": "  Second  "}).json()
        assert body["query"] == "Second"
        assert [h["lecture_id"] for h in body["hits"]] == [uploaded["second"]]

    def test_no_hits(self, client, uploaded):
        assert client.get("/search", params={"q": "nothing here"}).json()["hits"] == []

    def test_missing_query(self, client):
        assert client.get("/search").status_code == 422

    def test_empty_query(self, client):
        assert client.get("/search", params={"q": ""}).status_code == 422

    def test_blank_query(self, client):
        resp = client.get("/search", params={"q": "   "})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Search query must not be blank"

    def test_topic_filter(self, client, uploaded):
        body = client.get("/search", params={"q": "Second", "topic_id": 9999}).json()
        assert body["hits"] == []

    def test_lecture_search(self, client, uploaded):
        body = client.get("/search/lectures", params={"q": "терпении"}).json()
        assert [h["lecture_id"] for h in body["hits"]] == [uploaded["first"]]
        assert body["hits"][0]["order"] == 1

    def test_lecture_search_blank(self, client):
        assert client.get("/search/lectures", params={"q": " "}).status_code == 422


# ---------------------------------------------------------------------------
# Health and OpenAPI
# ---------------------------------------------------------------------------


class TestHealthAndDocs:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}

    def test_every_operation_is_documented(self, client):
        schema = client.get("/openapi.json").json()
        for path, methods in schema["paths"].items():
            for method, operation in methods.items():
                assert operation.get("summary"), "{} {} has no summary".format(method, path)
                assert operation.get("tags"), "{} {} has no tags".format(method, path)

    def test_cors_allows_any_origin(self, client):
        resp = client.get("/health", headers={"Origin": "https://example.org"})
        assert resp.headers["access-control-allow-origin"] == "*"
