import json
import unittest

from fake_transport import FakeTransport, envelope, json_response
from job_tracker.api.status_tracking import StatusTrackingAPI
from job_tracker.errors import ApiError
from job_tracker.http_client import ApiClient
from job_tracker.stores.status_tracking import StatusTrackingStore

BASE = "http://api.test"
HISTORY_PATH = "/api/v1/job-applications/12/status-history"
TRENDS_PATH = "/api/v1/job-applications/status-trends"
ANALYTICS_PATH = "/api/v1/job-applications/status-analytics"

HISTORY = {
    "history": [
        {"new_status": "一面中", "old_status": "笔试通过", "status_changed_at": "2024-05-03T10:00:00Z", "duration_minutes": 120},
        {"new_status": "笔试通过", "old_status": "笔试中", "status_changed_at": "2024-05-01T10:00:00Z", "duration_minutes": 30},
        {"new_status": "一面中", "status_changed_at": "2024-05-03T10:00:01Z"},
    ],
    "total": 3,
}

ANALYTICS = {
    "total_applications": 10,
    "status_distribution": {"一面中": 3, "已投递": 2, "已拒绝": 4, "已收到offer": 1},
    "success_rate": 0.1,
    "average_durations": {"一面中": 1440, "已投递": 1500},
    "insights": [{"title": "slow screening"}],
}


def _client(transport):
    return ApiClient(base_url=BASE, transport=transport, sleep=lambda s: None)


class StatusTrackingAPITests(unittest.TestCase):
    def test_history_is_normalized(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope(HISTORY))
        history = StatusTrackingAPI(_client(transport)).get_status_history(12, page=1, page_size=50)
        self.assertEqual([e.status for e in history.entries], ["笔试通过", "一面中"])
        self.assertEqual(history.summary.initial_status, "笔试中")
        self.assertEqual(history.summary.total_duration, 150)
        self.assertEqual(transport.calls[0].query, {"page": "1", "page_size": "50"})

    def test_history_without_list_is_empty(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope({"history": None}))
        history = StatusTrackingAPI(_client(transport)).get_status_history(12)
        self.assertEqual(history.entries, ())
        self.assertEqual(history.summary.current_stage, "未知阶段")

    def test_history_missing_data_raises(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope(None))
        with self.assertRaises(ApiError):
            StatusTrackingAPI(_client(transport)).get_status_history(12)

    def test_trends_accept_wrapped_bare_and_null_payloads(self):
        rows = [
            {"date": "2024-02-01", "status": "已收到offer", "count": 3},
            {"date": "2024-02-01", "status": "已拒绝", "count": 2},
        ]
        for payload in ({"days": 7, "trends": rows}, rows):
            with self.subTest(payload=type(payload).__name__):
                transport = FakeTransport().add("GET", TRENDS_PATH, envelope(payload))
                points = StatusTrackingAPI(_client(transport)).get_status_trends("week")
                self.assertEqual(transport.calls[0].query, {"days": "7"})
                self.assertEqual(len(points), 1)
                self.assertEqual(points[0].success_rate, 0.6)

        transport = FakeTransport().add("GET", TRENDS_PATH, envelope({"days": 90, "trends": None}))
        self.assertEqual(StatusTrackingAPI(_client(transport)).get_status_trends("quarter"), [])
        self.assertEqual(transport.calls[0].query, {"days": "90"})

    def test_trends_use_supplied_success_predicate(self):
        transport = FakeTransport().add("GET", TRENDS_PATH, envelope([{"date": "2024-02-01", "status": "已拒绝", "count": 4}]))
        points = StatusTrackingAPI(_client(transport)).get_status_trends(is_success_status=lambda s: s == "已拒绝")
        self.assertEqual(points[0].success_rate, 1.0)
        self.assertEqual(transport.calls[0].query, {"days": "30"})

    def test_batch_limit(self):
        transport = FakeTransport()
        api = StatusTrackingAPI(_client(transport))
        with self.assertRaises(ValueError):
            api.batch_update_status([{"application_id": i, "new_status": "已拒绝"} for i in range(101)])
        with self.assertRaises(ValueError):
            api.batch_update_status([])
        self.assertEqual(transport.calls, [])

    def test_transitions_path_is_quoted(self):
        transport = FakeTransport().add("GET", "/api/v1/status-transitions/HR面中", envelope(None))
        self.assertEqual(StatusTrackingAPI(_client(transport)).get_status_transitions("HR面中"), [])
        self.assertEqual(transport.calls[0].raw_path, "/api/v1/status-transitions/HR%E9%9D%A2%E4%B8%AD")

    def test_search_serializes_filters(self):
        transport = FakeTransport().add("GET", "/api/v1/applications/search", envelope({"applications": [], "total": 0}))
        StatusTrackingAPI(_client(transport)).search_applications("字节", filters={"status": ["一面中"]}, page=2)
        query = transport.calls[0].query
        self.assertEqual(query["q"], "字节")
        self.assertEqual(json.loads(query["filters"]), {"status": ["一面中"]})
        self.assertEqual(query["page"], "2")

    def test_update_preferences_wraps_config(self):
        transport = FakeTransport().add("PUT", "/api/v1/user-status-preferences", envelope({"preference_config": {"x": 1}}))
        StatusTrackingAPI(_client(transport)).update_user_status_preferences({"x": 1})
        self.assertEqual(transport.calls[0].json, {"preference_config": {"x": 1}})


class StatusTrackingStoreTests(unittest.TestCase):
    def test_history_is_cached_until_forced(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope(HISTORY))
        store = StatusTrackingStore(_client(transport))
        first = store.fetch_status_history(12)
        self.assertIs(store.fetch_status_history(12), first)
        self.assertEqual(len(transport.calls), 1)
        store.fetch_status_history(12, force_refresh=True)
        self.assertEqual(len(transport.calls), 2)

    def test_update_refetches_history_and_analytics(self):
        transport = (
            FakeTransport()
            .add("GET", HISTORY_PATH, envelope(HISTORY))
            .add("GET", ANALYTICS_PATH, envelope(ANALYTICS))
            .add("POST", "/api/v1/job-applications/12/status", envelope(None))
        )
        store = StatusTrackingStore(_client(transport))
        store.fetch_status_history(12)
        store.fetch_analytics()

        store.update_application_status(12, "一面通过", note="went well")
        self.assertEqual(transport.calls_to("POST", "/api/v1/job-applications/12/status")[0].json, {"status": "一面通过", "note": "went well"})
        self.assertEqual(len(transport.calls_to("GET", HISTORY_PATH)), 2)
        self.assertEqual(len(transport.calls_to("GET", ANALYTICS_PATH)), 2)

    def test_backward_move_needs_note(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope(HISTORY)).add("POST", "/api/v1/job-applications/12/status", envelope(None))
        store = StatusTrackingStore(_client(transport))
        store.fetch_status_history(12)
        with self.assertRaises(ValueError):
            store.update_application_status(12, "已投递")
        self.assertEqual(transport.calls_to("POST", "/api/v1/job-applications/12/status"), [])
        store.update_application_status(12, "已投递", note="recruiter reopened the role")
        self.assertEqual(len(transport.calls_to("POST", "/api/v1/job-applications/12/status")), 1)

    def test_batch_update_invalidates_touched_histories(self):
        transport = (
            FakeTransport()
            .add("GET", HISTORY_PATH, envelope(HISTORY))
            .add("PUT", "/api/v1/job-applications/status/batch", envelope(None))
        )
        store = StatusTrackingStore(_client(transport))
        store.fetch_status_history(12)
        store.batch_update_statuses([{"application_id": 12, "new_status": "已拒绝"}], batch_note="closing")
        self.assertNotIn(12, store.status_histories)
        self.assertEqual(transport.calls_to("PUT", "/api/v1/job-applications/status/batch")[0].json["batch_note"], "closing")

    def test_failed_fetch_raises(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, json_response({}, status=500))
        store = StatusTrackingStore(_client(transport))
        with self.assertRaises(ApiError):
            store.fetch_status_history(12)
        self.assertNotIn(12, store.status_histories)

    def test_analytics_views(self):
        transport = FakeTransport().add("GET", ANALYTICS_PATH, envelope(ANALYTICS))
        store = StatusTrackingStore(_client(transport))
        self.assertEqual(store.status_stats_cards, [])
        store.fetch_analytics()

        cards = {c["title"]: c["value"] for c in store.status_stats_cards}
        self.assertEqual(cards["总申请数"], 10)
        self.assertEqual(cards["活跃申请"], 5)
        self.assertEqual(cards["成功率"], "10.0%")
        self.assertEqual(cards["平均周期"], "3天")

        dist = {d["name"]: d for d in store.status_distribution_data}
        self.assertEqual(dist["已拒绝"]["percentage"], 40.0)
        self.assertEqual(dist["已拒绝"]["color"], "red")
        self.assertEqual(dist["已收到offer"]["color"], "green")
        self.assertEqual(store.process_insights, [{"title": "slow screening"}])

    def test_trends_are_not_cached(self):
        transport = FakeTransport().add("GET", TRENDS_PATH, envelope([]))
        store = StatusTrackingStore(_client(transport))
        store.fetch_status_trends("week")
        store.fetch_status_trends("month")
        self.assertEqual([c.query["days"] for c in transport.calls], ["7", "30"])

    def test_clear_cache(self):
        transport = FakeTransport().add("GET", HISTORY_PATH, envelope(HISTORY)).add("GET", "/api/v1/status-definitions", envelope({"statuses": []}))
        store = StatusTrackingStore(_client(transport))
        store.fetch_status_history(12)
        store.fetch_status_definitions()
        store.fetch_status_definitions()
        self.assertEqual(len(transport.calls_to("GET", "/api/v1/status-definitions")), 1)
        store.clear_cache()
        self.assertEqual(store.status_histories, {})
        self.assertIsNone(store.status_definitions)


if __name__ == "__main__":
    unittest.main()
