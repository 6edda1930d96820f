"""Unit tests for cache keys and the invalidation coordinator."""

from unittest.mock import Mock

import pytest

from resilient_api_sdk.cache.keys import ResourceKeys, key_matches, normalize_key, resource_key

pytestmark = pytest.mark.unit


class TestKeys:

    def test_string_keys_split_on_path_segments(self):
        assert normalize_key("/api/decisions") == ("api", "decisions")
        assert normalize_key("collectionKey") == ("collectionKey",)

    def test_tuple_and_list_keys(self):
        assert normalize_key(("decisions", 3)) == ("decisions", 3)
        assert normalize_key(["decisions", 3]) == ("decisions", 3)

    @pytest.mark.parametrize("key", ["", "/", (), []])
    def test_empty_keys_rejected(self, key):
        with pytest.raises(ValueError):
            normalize_key(key)

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            normalize_key(42)

    def test_prefix_matching_is_segment_aware(self):
        assert key_matches(normalize_key("/api/decisions/5"), normalize_key("/api/decisions"))
        assert key_matches(normalize_key("/api/decisions"), normalize_key("/api/decisions"))
        assert not key_matches(normalize_key("/api/decisions-archive"), normalize_key("/api/decisions"))
        assert not key_matches(normalize_key("/api/decisions"), normalize_key("/api/decisions/5"))

    def test_resource_keys(self):
        assert ResourceKeys.PROBLEM_TREES == ("problem-trees",)
        assert resource_key("offers") == ("offers",)
        assert resource_key("weekly_reflections", 12) == ("weekly-reflections", 12)
        assert resource_key("monthly-check-ins", "m1") == ("monthly-check-ins", "m1")

    def test_unknown_resource(self):
        with pytest.raises(KeyError):
            resource_key("spaceships")


class TestCacheInvalidationCoordinator:

    def test_exact_key_notified_once(self, coordinator):
        subscriber = Mock()
        coordinator.subscribe("collectionKey", subscriber)

        notified = coordinator.invalidate(["collectionKey"])

        assert notified == 1
        subscriber.assert_called_once_with(("collectionKey",))

    def test_prefix_match(self, coordinator):
        item = Mock()
        collection = Mock()
        other = Mock()
        coordinator.subscribe(("offers", 7), item)
        coordinator.subscribe(("offers",), collection)
        coordinator.subscribe(("decisions",), other)

        coordinator.invalidate([ResourceKeys.OFFERS])

        item.assert_called_once_with(("offers", 7))
        collection.assert_called_once_with(("offers",))
        other.assert_not_called()

    def test_one_notification_even_when_several_keys_match(self, coordinator):
        subscriber = Mock()
        coordinator.subscribe(("offers", 7), subscriber)

        coordinator.invalidate([("offers",), ("offers", 7)])

        subscriber.assert_called_once()

    def test_no_subscribers_is_noop(self, coordinator):
        unrelated = Mock()
        coordinator.subscribe("decisions", unrelated)

        assert coordinator.invalidate(["nobody-listens"]) == 0
        assert coordinator.invalidate([]) == 0
        unrelated.assert_not_called()
        assert coordinator.subscriber_count("decisions") == 1

    def test_unsubscribe(self, coordinator):
        subscriber = Mock()
        unsubscribe = coordinator.subscribe("offers", subscriber)

        unsubscribe()
        unsubscribe()
        coordinator.invalidate(["offers"])

        subscriber.assert_not_called()
        assert coordinator.subscriber_count() == 0

    def test_failing_subscriber_does_not_block_others(self, coordinator, caplog):
        broken = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        coordinator.subscribe("offers", broken)
        coordinator.subscribe("offers", healthy)

        notified = coordinator.invalidate(["offers"])

        assert notified == 1
        healthy.assert_called_once()
        assert "boom" in caplog.text

    def test_subscriber_may_unsubscribe_during_notification(self, coordinator):
        calls = []
        holder = {}

        def once(key):
            calls.append(key)
            holder["unsubscribe"]()

        holder["unsubscribe"] = coordinator.subscribe("offers", once)

        coordinator.invalidate(["offers"])
        coordinator.invalidate(["offers"])

        assert calls == [("offers",)]
