"""
Tests for the Funnels API.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from cdp_engine.adapters.memory_events import InMemoryEventStore


def seed_checkout(store: InMemoryEventStore, make_event) -> None:
    """Six visitors view /pricing, three of them sign up afterwards."""
    events = []
    for i in range(6):
        visitor = f"v{i}"
        events.append(
            make_event(visitor, f"s{i}", "pageview", i * 10, page_url=f"https://shop.test/pricing?ref={i}")
        )
        if i % 2 == 0:
            events.append(make_event(visitor, f"s{i}", "sign_up", i * 10 + 120))
    store.add_events(events)


class TestAnalyzeFunnel:
    """POST /api/funnels/analyze"""

    def test_two_step_funnel(self, client: TestClient, store: InMemoryEventStore, make_event) -> None:
        seed_checkout(store, make_event)

        response = client.post(
            "/api/funnels/analyze",
            json={
                "site_id": "site-1",
                "name": "Signup",
                "steps": [
                    {"kind": "url", "match_value": "/pricing", "name": "Pricing"},
                    {"kind": "event", "match_value": "sign_up"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Signup"
        assert [s["total_visitors"] for s in body["steps"]] == [6, 3]
        second = body["steps"][1]
        assert second["conversion_rate"] == 50.0
        assert second["dropoff_from_previous"] == 3
        assert second["avg_time_to_convert"] == 120
        assert body["steps"][0]["step_name"] == "Pricing"
        assert body["overall"]["total_completions"] == 3
        assert body["events_fetched"] == 9

    def test_like_wildcards(self, client: TestClient, store: InMemoryEventStore, make_event) -> None:
        store.add_events(
            [
                make_event("a", "a", "pageview", 0, page_url="https://shop.test/blog/post-1"),
                make_event("a", "a", "pageview", 10, page_url="https://shop.test/pricing"),
                make_event("b", "b", "pageview", 0, page_url="https://shop.test/docs"),
            ]
        )

        response = client.post(
            "/api/funnels/analyze",
            json={
                "site_id": "site-1",
                "steps": [
                    {"kind": "url", "match_value": "/blog/%"},
                    {"kind": "url", "match_value": "pricing", "url_match": "contains"},
                ],
            },
        )

        assert [s["total_visitors"] for s in response.json()["steps"]] == [1, 1]

    def test_single_step_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/funnels/analyze",
            json={"site_id": "site-1", "steps": [{"kind": "event", "match_value": "x"}]},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["errors"][0]["code"] == "too_few_steps"

    def test_unknown_step_kind_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/funnels/analyze",
            json={
                "site_id": "site-1",
                "steps": [
                    {"kind": "click", "match_value": "x"},
                    {"kind": "event", "match_value": "y"},
                ],
            },
        )

        assert response.status_code == 400
        codes = [e["code"] for e in response.json()["detail"]["errors"]]
        assert "unknown_step_kind" in codes

    def test_missing_body_fields_is_422(self, client: TestClient) -> None:
        response = client.post("/api/funnels/analyze", json={"steps": []})

        assert response.status_code == 422

    def test_store_failure_is_503(self, unavailable_client: TestClient) -> None:
        response = unavailable_client.post(
            "/api/funnels/analyze",
            json={
                "site_id": "site-1",
                "steps": [
                    {"kind": "url", "match_value": "/a"},
                    {"kind": "url", "match_value": "/b"},
                ],
            },
        )

        assert response.status_code == 503
        assert "Retry-After" in response.headers
