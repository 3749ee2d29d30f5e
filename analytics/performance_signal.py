"""
Performance Signal Aggregation

Reference aggregation of recent interactions into the accuracy /
hint-dependency / mastery signal consumed by the decision policies.
"""

import statistics
from typing import Dict, Iterable, Optional

from models.schemas import Interaction, PerformanceSignal

DEFAULT_ACCURACY = 0.5
DEFAULT_MASTERY = 0.5


def aggregate_performance(
    interactions: Iterable[Interaction],
    mastery_by_skill: Optional[Dict[str, float]] = None,
    window: Optional[int] = None
) -> PerformanceSignal:
    """
    Build a PerformanceSignal from a student's interactions.
    
    Args:
        interactions: Answered attempts, any order
        mastery_by_skill: Stored mastery per skill, averaged into avg_mastery
        window: Keep only the N most recent interactions
    
    Returns:
        PerformanceSignal with neutral defaults when there is no data
    """
    ordered = sorted(interactions, key=lambda i: i.timestamp)
    if window is not None:
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        ordered = ordered[-window:]
    
    total = len(ordered)
    
    if total:
        accuracy = sum(1 for i in ordered if i.is_correct) / total
        hint_dependency = sum(1 for i in ordered if i.hints_used > 0) / total
        avg_response_time = statistics.fmean(i.response_time_sec for i in ordered)
    else:
        accuracy = DEFAULT_ACCURACY
        hint_dependency = 0.0
        avg_response_time = 0.0
    
    mastery_values = list((mastery_by_skill or {}).values())
    avg_mastery = statistics.fmean(mastery_values) if mastery_values else DEFAULT_MASTERY
    
    return PerformanceSignal(
        accuracy=accuracy,
        hint_dependency=hint_dependency,
        avg_mastery=min(max(avg_mastery, 0.0), 1.0),
        total_attempts=total,
        avg_response_time_sec=avg_response_time,
    )
