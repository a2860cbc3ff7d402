"""Tests for FeatureVoteService."""

from unittest.mock import MagicMock

import pytest

from thinkedin.core.exceptions import StoreUnavailableError, ValidationError
from thinkedin.core.types import VoteTally
from thinkedin.services.feature_vote_service import FeatureVoteService
from thinkedin.services.identity_service import IdentityService, PSEUDONYM_KEY


@pytest.fixture
def identity(device_state):
    device_state.set(PSEUDONYM_KEY, "Calm Oak")
    return IdentityService(device_state)


@pytest.fixture
def votes(store, identity):
    return FeatureVoteService(store, identity)


class TestVote:

    def test_vote_uses_device_pseudonym(self, votes):
        votes.vote("want")
        assert votes.tally().want == ["Calm Oak"]
        assert votes.my_vote() == "want"

    def test_change_of_mind(self, votes):
        votes.vote("want")
        votes.vote("dont")

        tally = votes.tally()

        assert tally.want == []
        assert tally.dont == ["Calm Oak"]
        assert votes.my_vote(tally) == "dont"

    def test_not_voted(self, votes):
        assert votes.my_vote() is None

    def test_unknown_choice_never_reaches_store(self, identity):
        store = MagicMock()
        with pytest.raises(ValidationError):
            FeatureVoteService(store, identity).vote("meh")
        store.set_feature_vote.assert_not_called()

    def test_store_failure_propagates(self, identity):
        store = MagicMock()
        store.set_feature_vote.side_effect = StoreUnavailableError()
        with pytest.raises(StoreUnavailableError):
            FeatureVoteService(store, identity).vote("want")


class TestTally:

    def test_tally_empty_when_store_down(self, identity):
        store = MagicMock()
        store.get_feature_votes.side_effect = StoreUnavailableError()

        tally = FeatureVoteService(store, identity).tally()

        assert tally == VoteTally()

    def test_watch_sees_other_devices(self, votes, store):
        seen = []
        votes.watch(seen.append)

        store.set_feature_vote("Shy Fox", "dont")

        assert seen[0].dont == ["Shy Fox"]
