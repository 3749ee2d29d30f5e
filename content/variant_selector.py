"""Content-difficulty variant selection."""

import logging
from dataclasses import dataclass
from typing import Optional

from mastery.bkt import coerce_unit_interval
from models.schemas import VariantType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialStudentState:
    """Starting mastery/accuracy before any live answers"""
    mastery: float
    accuracy: float
    from_profile: bool


class VariantSelector:
    """Choose scaffolding / original / enrichment for a content item.
    
    Availability flags are hard gates: a variant that does not exist for the
    item is never returned, however extreme the signal.
    """
    
    # In-exercise thresholds (live accuracy required)
    SCAFFOLD_MASTERY = 0.4
    SCAFFOLD_ACCURACY = 0.5
    ENRICH_MASTERY = 0.8
    ENRICH_ACCURACY = 0.9
    
    # Cold-start thresholds (stored mastery only)
    INITIAL_ENRICH_MASTERY = 0.75
    INITIAL_SCAFFOLD_MASTERY = 0.35
    
    DEFAULT_MASTERY = 0.5
    DEFAULT_ACCURACY = 0.5
    
    def select_variant(
        self,
        mastery: float,
        accuracy: float,
        has_scaffolding: bool,
        has_enrichment: bool
    ) -> VariantType:
        """
        Select a variant during an exercise.
        
        Args:
            mastery: Current topic mastery (0-1)
            accuracy: Recent accuracy (0-1)
            has_scaffolding: Whether an easier variant exists
            has_enrichment: Whether a harder variant exists
        
        Returns:
            The variant to present
        """
        mastery = coerce_unit_interval(mastery, "mastery")
        accuracy = coerce_unit_interval(accuracy, "accuracy")
        
        if (mastery < self.SCAFFOLD_MASTERY and
                accuracy < self.SCAFFOLD_ACCURACY and
                has_scaffolding):
            return VariantType.SCAFFOLDING
        
        if (mastery > self.ENRICH_MASTERY and
                accuracy > self.ENRICH_ACCURACY and
                has_enrichment):
            return VariantType.ENRICHMENT
        
        return VariantType.ORIGINAL
    
    def get_initial_variant(
        self,
        topic_mastery: Optional[float],
        has_scaffolding: bool,
        has_enrichment: bool
    ) -> VariantType:
        """
        Select the starting variant from the stored profile alone.
        
        Args:
            topic_mastery: Stored mastery for the topic, None for a new student/topic
            has_scaffolding: Whether an easier variant exists
            has_enrichment: Whether a harder variant exists
        
        Returns:
            The variant to start with
        """
        if topic_mastery is None:
            return VariantType.ORIGINAL
        
        topic_mastery = coerce_unit_interval(topic_mastery, "topic_mastery")
        
        if topic_mastery > self.INITIAL_ENRICH_MASTERY and has_enrichment:
            logger.info(f"🎯 Initial variant: enrichment (existing mastery: {topic_mastery:.2f})")
            return VariantType.ENRICHMENT
        
        if topic_mastery < self.INITIAL_SCAFFOLD_MASTERY and has_scaffolding:
            logger.info(f"🎯 Initial variant: scaffolding (existing mastery: {topic_mastery:.2f})")
            return VariantType.SCAFFOLDING
        
        return VariantType.ORIGINAL
    
    def estimate_initial_state(self, topic_mastery: Optional[float]) -> InitialStudentState:
        """
        Starting mastery and accuracy for a session.
        
        Accuracy is unknown until the first answers, so it is biased by the
        stored mastery level.
        """
        if topic_mastery is None:
            return InitialStudentState(
                mastery=self.DEFAULT_MASTERY,
                accuracy=self.DEFAULT_ACCURACY,
                from_profile=False
            )
        
        mastery = coerce_unit_interval(topic_mastery, "topic_mastery")
        
        if mastery > 0.7:
            accuracy = 0.75
        elif mastery < 0.3:
            accuracy = 0.4
        else:
            accuracy = 0.6
        
        return InitialStudentState(mastery=mastery, accuracy=accuracy, from_profile=True)
