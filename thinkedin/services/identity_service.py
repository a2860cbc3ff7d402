"""Shadow identity: a random "Adjective Noun" pseudonym kept per device."""

import logging
import random
from typing import Optional

from thinkedin.core.device_state import DeviceState

logger = logging.getLogger("thinkedin")

PSEUDONYM_KEY = "thinkedin_shadow_identity"

ADJECTIVES = (
    "Wandering", "Curious", "Silent", "Bright", "Gentle", "Mysterious", "Wise",
    "Playful", "Serene", "Bold", "Quiet", "Lively", "Dreamy", "Clever", "Peaceful",
    "Energetic", "Thoughtful", "Cheerful", "Calm", "Creative", "Friendly", "Patient",
    "Adventurous", "Kind", "Imaginative", "Warm", "Inspiring", "Hopeful", "Grateful",
    "Mindful", "Restless", "Hidden", "Vivid", "Shy", "Brave", "Fierce", "Radiant",
    "Shadowy", "Eager", "Open", "Reflective", "Blunt", "Candid", "Private",
)

NOUNS = (
    "Owl", "Flame", "Fox", "Leaf", "Star", "River", "Mountain", "Ocean", "Forest",
    "Cloud", "Bird", "Flower", "Tree", "Moon", "Sun", "Wind", "Rain", "Snow", "Fire",
    "Earth", "Sky", "Wave", "Stone", "Crystal", "Butterfly", "Dragonfly", "Sparrow",
    "Rose", "Lily", "Pine", "Maple", "Willow", "Cedar", "Oak", "Birch", "Aspen",
    "Juniper", "Shadow", "Echo", "Mist", "Spark", "Dawn", "Dusk", "Spirit", "Muse",
)


def generate_pseudonym(rng: Optional[random.Random] = None) -> str:
    """Pick one adjective and one noun uniformly at random."""
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)}"


class IdentityService:
    """Hands out the device's pseudonym, creating it on first use.

    Pseudonyms are never checked for uniqueness; two devices may share one.
    """

    def __init__(self, device_state: DeviceState, rng: Optional[random.Random] = None):
        self._state = device_state
        self._rng = rng

    def get_pseudonym(self) -> str:
        stored = self._state.get(PSEUDONYM_KEY)
        if isinstance(stored, str) and stored.strip():
            return stored

        pseudonym = generate_pseudonym(self._rng)
        self._state.set(PSEUDONYM_KEY, pseudonym)
        logger.info(f"Assigned new shadow identity: {pseudonym}")
        return pseudonym

    def reset_pseudonym(self) -> None:
        """Forget the stored pseudonym; the next get_pseudonym() draws a new one."""
        self._state.delete(PSEUDONYM_KEY)
        logger.info("Shadow identity cleared")
