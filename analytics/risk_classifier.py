"""
Student Risk Classifier

Disjunctive classifier for reporting dashboards: any single signal is
enough to raise the tier. Tiers are recomputed per request and never stored.
"""

from mastery.bkt import coerce_unit_interval
from models.schemas import PerformanceSignal, RiskTier


class RiskClassifier:
    """Classify a student's risk tier from aggregate performance"""
    
    HIGH_ACCURACY = 0.4
    HIGH_HINT_DEPENDENCY = 0.7
    HIGH_MASTERY = 0.3
    
    MEDIUM_ACCURACY = 0.7
    MEDIUM_HINT_DEPENDENCY = 0.4
    MEDIUM_MASTERY = 0.6
    
    def calculate_risk_level(
        self,
        accuracy: float,
        hint_dependency: float,
        avg_mastery: float
    ) -> RiskTier:
        """
        Determine risk tier.
        
        Risk Levels:
        - High: accuracy < 0.4 OR hint_dependency > 0.7 OR avg_mastery < 0.3
        - Medium: accuracy < 0.7 OR hint_dependency > 0.4 OR avg_mastery < 0.6
        - Low: otherwise
        """
        accuracy = coerce_unit_interval(accuracy, "accuracy")
        hint_dependency = coerce_unit_interval(hint_dependency, "hint_dependency")
        avg_mastery = coerce_unit_interval(avg_mastery, "avg_mastery")
        
        if (accuracy < self.HIGH_ACCURACY or
                hint_dependency > self.HIGH_HINT_DEPENDENCY or
                avg_mastery < self.HIGH_MASTERY):
            return RiskTier.HIGH
        
        if (accuracy < self.MEDIUM_ACCURACY or
                hint_dependency > self.MEDIUM_HINT_DEPENDENCY or
                avg_mastery < self.MEDIUM_MASTERY):
            return RiskTier.MEDIUM
        
        return RiskTier.LOW
    
    def classify(self, signal: PerformanceSignal) -> RiskTier:
        return self.calculate_risk_level(
            signal.accuracy,
            signal.hint_dependency,
            signal.avg_mastery
        )
