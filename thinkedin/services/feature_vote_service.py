"""Want/don't-want voting on the proposed chatbot feature."""

import logging
from typing import Optional

from thinkedin.adapters.record_store import RecordStore, Subscription, VoteListener
from thinkedin.core.exceptions import StoreUnavailableError, ValidationError
from thinkedin.core.types import FEATURE_VOTE_CHOICES, VoteTally
from thinkedin.services.identity_service import IdentityService

logger = logging.getLogger("thinkedin")


class FeatureVoteService:
    """One vote per device pseudonym; voting again switches sides."""

    def __init__(self, store: RecordStore, identity: IdentityService):
        self._store = store
        self._identity = identity

    def vote(self, choice: str) -> None:
        """Cast or change the vote of this device's pseudonym.

        Raises:
            ValidationError: choice is not "want" or "dont"
            StoreUnavailableError: Backend failure
        """
        if choice not in FEATURE_VOTE_CHOICES:
            raise ValidationError(f"Vote must be one of {', '.join(FEATURE_VOTE_CHOICES)}")
        self._store.set_feature_vote(self._identity.get_pseudonym(), choice)

    def tally(self) -> VoteTally:
        """Current votes. Empty when the store is unreachable."""
        try:
            return self._store.get_feature_votes()
        except StoreUnavailableError as e:
            logger.error(f"Failed to load feature votes: {e}")
            return VoteTally()

    def my_vote(self, tally: Optional[VoteTally] = None) -> Optional[str]:
        """This device's choice, or None if it has not voted."""
        if tally is None:
            tally = self.tally()
        return tally.choice_of(self._identity.get_pseudonym())

    def watch(self, on_change: VoteListener) -> Subscription:
        return self._store.subscribe_feature_votes(on_change)
