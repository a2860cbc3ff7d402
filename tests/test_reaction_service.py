"""Tests for ReactionService."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from thinkedin.core.device_state import InMemoryDeviceState
from thinkedin.core.exceptions import StoreUnavailableError, ValidationError
from thinkedin.services.reaction_service import ReactionService, reaction_key


def _post_id(store):
    return store.create_post("Reactions please", ["#general"], "thought", "Quiet Owl", None)


class TestToggle:
    """Test optimistic toggling."""

    def test_first_toggle_sets_flag_and_counts(self, store, device_state):
        post_id = _post_id(store)
        service = ReactionService(store, device_state)
        service.load(store.get_post(post_id))

        assert service.toggle(post_id, "inspired") is True

        assert service.has_reacted(post_id, "inspired")
        assert service.counts(post_id)["inspired"] == 1
        assert store.get_post(post_id).reactions["inspired"] == 1
        assert device_state.get(reaction_key(post_id)) == {"inspired": True}

    def test_react_then_unreact_restores_counter(self, store, device_state):
        post_id = _post_id(store)
        store.increment_reaction_counter(post_id, "think", 1)
        service = ReactionService(store, device_state)
        service.load(store.get_post(post_id))

        service.toggle(post_id, "think")
        assert service.toggle(post_id, "think") is False

        assert service.counts(post_id)["think"] == 1
        assert store.get_post(post_id).reactions["think"] == 1
        assert not service.has_reacted(post_id, "think")
        assert device_state.get(reaction_key(post_id)) is None

    def test_flags_are_per_kind(self, store, device_state):
        post_id = _post_id(store)
        service = ReactionService(store, device_state)

        service.toggle(post_id, "think")

        assert service.has_reacted(post_id, "think")
        assert not service.has_reacted(post_id, "relatable")

    def test_displayed_counter_never_negative(self, device_state):
        store = MagicMock()
        state = InMemoryDeviceState({reaction_key("p1"): {"following": True}})
        service = ReactionService(store, state)

        service.toggle("p1", "following")

        assert service.counts("p1")["following"] == 0
        store.increment_reaction_counter.assert_called_once_with("p1", "following", -1)

    def test_unknown_kind_rejected(self, store, device_state):
        service = ReactionService(store, device_state)
        with pytest.raises(ValidationError):
            service.toggle("p1", "love")
        with pytest.raises(ValidationError):
            service.has_reacted("p1", "love")

    def test_store_failure_is_swallowed(self, device_state):
        store = MagicMock()
        store.increment_reaction_counter.side_effect = StoreUnavailableError()
        service = ReactionService(store, device_state)

        assert service.toggle("p1", "inspired") is True
        assert service.counts("p1")["inspired"] == 1
        assert service.has_reacted("p1", "inspired")

    def test_cleared_storage_allows_reacting_again(self, store, device_state):
        post_id = _post_id(store)
        service = ReactionService(store, device_state)
        service.toggle(post_id, "inspired")

        device_state.clear()
        service.toggle(post_id, "inspired")

        assert store.get_post(post_id).reactions["inspired"] == 2

    def test_executor_dispatch(self, store, device_state):
        post_id = _post_id(store)
        with ThreadPoolExecutor(max_workers=1) as executor:
            service = ReactionService(store, device_state, executor=executor)
            service.toggle(post_id, "relatable")

        assert store.get_post(post_id).reactions["relatable"] == 1


class TestConcurrentClients:
    """Two devices reacting at the same time."""

    def test_two_concurrent_increments_yield_plus_two(self, store):
        post_id = _post_id(store)
        for _ in range(3):
            store.increment_reaction_counter(post_id, "inspired", 1)
        clients = [ReactionService(store, InMemoryDeviceState()) for _ in range(2)]
        barrier = threading.Barrier(2)

        def react(service):
            barrier.wait()
            service.toggle(post_id, "inspired")

        threads = [threading.Thread(target=react, args=(s,)) for s in clients]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_post(post_id).reactions["inspired"] == 5


class TestWatch:
    """Test live updates."""

    def test_snapshot_replaces_displayed_counts(self, store, device_state):
        post_id = _post_id(store)
        viewer = ReactionService(store, device_state)
        viewer.load(store.get_post(post_id))
        pushed = []
        viewer.watch(post_id, pushed.append)

        other_device = ReactionService(store, InMemoryDeviceState())
        other_device.toggle(post_id, "following")

        assert viewer.counts(post_id)["following"] == 1
        assert pushed[-1]["following"] == 1
        assert not viewer.has_reacted(post_id, "following")

    def test_cancel_stops_updates(self, store, device_state):
        post_id = _post_id(store)
        viewer = ReactionService(store, device_state)
        sub = viewer.watch(post_id)
        sub.cancel()

        store.increment_reaction_counter(post_id, "think", 1)

        assert viewer.counts(post_id)["think"] == 0
