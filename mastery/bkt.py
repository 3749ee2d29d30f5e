"""
Bayesian Knowledge Tracing

Two-state (known / unknown) mastery model. Every function here is pure:
the caller owns persistence of the returned MasteryState.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from config.settings import settings
from models.schemas import Interaction, MasteryState

logger = logging.getLogger(__name__)

MASTERY_FLOOR = 0.01
MASTERY_CEILING = 0.99


class InvalidSignalError(ValueError):
    """Raised when a numeric input is NaN or infinite"""


def coerce_unit_interval(value: float, name: str = "value") -> float:
    """
    Validate a probability-like input and clamp it into [0, 1].

    Non-finite values are rejected. Finite out-of-range values are clamped
    with a warning.
    """
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidSignalError(f"{name} must be a number, got {value!r}") from e

    if not math.isfinite(value):
        raise InvalidSignalError(f"{name} must be finite, got {value}")

    if value < 0.0 or value > 1.0:
        clamped = min(max(value, 0.0), 1.0)
        logger.warning(f"{name}={value} outside [0, 1], clamped to {clamped}")
        return clamped

    return value


def clamp_probability(p: float) -> float:
    """Clamp a mastery probability to [MASTERY_FLOOR, MASTERY_CEILING]."""
    return max(MASTERY_FLOOR, min(MASTERY_CEILING, p))


@dataclass(frozen=True)
class BKTParameters:
    """Deployment-wide BKT parameters"""
    p_init: float = 0.3
    p_learn: float = 0.1
    p_slip: float = 0.1
    p_guess: float = 0.25

    def __post_init__(self):
        for name in ("p_init", "p_learn", "p_slip", "p_guess"):
            value = getattr(self, name)
            if not (0.0 < value < 1.0):
                raise ValueError(f"{name} must be in (0, 1), got {value}")
        if self.p_guess >= 1.0 - self.p_slip:
            raise ValueError(
                f"p_guess ({self.p_guess}) must be below 1 - p_slip ({1.0 - self.p_slip})"
            )

    @classmethod
    def from_settings(cls) -> "BKTParameters":
        return cls(
            p_init=settings.BKT_P_INIT,
            p_learn=settings.BKT_P_LEARN,
            p_slip=settings.BKT_P_SLIP,
            p_guess=settings.BKT_P_GUESS,
        )


class MasteryEstimator:
    """Updates a mastery probability from one observed outcome"""
    
    def __init__(self, params: Optional[BKTParameters] = None):
        self.params = params or BKTParameters.from_settings()
    
    def update(self, prior: float, is_correct: bool) -> float:
        """
        Apply one BKT step.
        
        Args:
            prior: Current mastery probability
            is_correct: Observed outcome of the attempt
        
        Returns:
            New mastery, clamped to [0.01, 0.99]
        """
        p = self.params
        prior = clamp_probability(coerce_unit_interval(prior, "prior"))
        
        if is_correct:
            likelihood_known = 1.0 - p.p_slip
            likelihood_unknown = p.p_guess
        else:
            likelihood_known = p.p_slip
            likelihood_unknown = 1.0 - p.p_guess
        
        numerator = prior * likelihood_known
        denominator = numerator + (1.0 - prior) * likelihood_unknown
        posterior = numerator / denominator
        
        # Learning transition after the attempt
        new_mastery = posterior + (1.0 - posterior) * p.p_learn
        
        return clamp_probability(new_mastery)
    
    def predict_correct(self, mastery: float) -> float:
        """Probability that the next attempt is answered correctly."""
        m = coerce_unit_interval(mastery, "mastery")
        return m * (1.0 - self.params.p_slip) + (1.0 - m) * self.params.p_guess
    
    def trace(self, prior: float, outcomes: Iterable[bool]) -> List[float]:
        """Mastery after each outcome, in order."""
        history = []
        current = prior
        for is_correct in outcomes:
            current = self.update(current, is_correct)
            history.append(current)
        return history
    
    def seed_state(self, student_id: str, skill_id: str) -> MasteryState:
        """State for a skill the student has never attempted."""
        return MasteryState(
            student_id=student_id,
            skill_id=skill_id,
            probability=clamp_probability(self.params.p_init),
            interaction_count=0,
        )
    
    def apply(self, state: MasteryState, interaction: Interaction) -> MasteryState:
        """Return the state superseding `state` after `interaction`."""
        new_probability = self.update(state.probability, interaction.is_correct)
        
        logger.debug(
            f"BKT update for {state.student_id}/{state.skill_id}: "
            f"{state.probability:.3f} -> {new_probability:.3f} "
            f"({'correct' if interaction.is_correct else 'incorrect'})"
        )
        
        return state.model_copy(update={
            "probability": new_probability,
            "interaction_count": state.interaction_count + 1,
            "updated_at": interaction.timestamp,
        })
