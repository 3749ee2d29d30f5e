"""
Pedagogical Action Policy

Maps a mastery estimate and recent accuracy to an advisory action for the
lesson flow. The decision table is ordered: the first matching rule wins.
"""

import logging
from typing import Iterable

from mastery.bkt import coerce_unit_interval
from models.schemas import Interaction, PedagogicalAction

logger = logging.getLogger(__name__)


class ActionPolicy:
    """Decides the next pedagogical action"""
    
    MASTERED_THRESHOLD = 0.95
    CHALLENGE_MASTERY = 0.8
    CHALLENGE_ACCURACY = 0.85
    REMEDIATE_MASTERY = 0.4
    REMEDIATE_ACCURACY = 0.5
    
    # Enrichment offer (student may decline)
    OFFER_MASTERY = 0.7
    OFFER_ACCURACY = 0.85
    OFFER_CONSECUTIVE = 3
    
    def determine_action(self, mastery: float, accuracy: float) -> PedagogicalAction:
        """
        Determine the pedagogical action.
        
        Rules (first match wins):
        - mastery >= 0.95 -> mastered
        - mastery >= 0.8 and accuracy >= 0.85 -> challenge
        - mastery < 0.4 and accuracy < 0.5 -> remediate
        - otherwise -> continue
        """
        mastery = coerce_unit_interval(mastery, "mastery")
        accuracy = coerce_unit_interval(accuracy, "accuracy")
        
        if mastery >= self.MASTERED_THRESHOLD:
            return PedagogicalAction.MASTERED
        
        if mastery >= self.CHALLENGE_MASTERY and accuracy >= self.CHALLENGE_ACCURACY:
            return PedagogicalAction.CHALLENGE
        
        if mastery < self.REMEDIATE_MASTERY and accuracy < self.REMEDIATE_ACCURACY:
            return PedagogicalAction.REMEDIATE
        
        return PedagogicalAction.CONTINUE
    
    def should_offer_enrichment(
        self,
        mastery: float,
        accuracy: float,
        consecutive_successes: int,
        has_enrichment: bool
    ) -> bool:
        """
        Whether to offer (not force) an enrichment variant.
        
        Requires mastery >= 0.7, accuracy >= 0.85 and three correct answers in a row.
        """
        if not has_enrichment:
            return False
        
        mastery = coerce_unit_interval(mastery, "mastery")
        accuracy = coerce_unit_interval(accuracy, "accuracy")
        
        return (
            mastery >= self.OFFER_MASTERY and
            accuracy >= self.OFFER_ACCURACY and
            consecutive_successes >= self.OFFER_CONSECUTIVE
        )


def count_consecutive_successes(interactions: Iterable[Interaction]) -> int:
    """Length of the trailing run of correct answers, by timestamp."""
    ordered = sorted(interactions, key=lambda i: i.timestamp)
    streak = 0
    for interaction in reversed(ordered):
        if not interaction.is_correct:
            break
        streak += 1
    return streak
