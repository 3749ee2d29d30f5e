"""
Curriculum Policy Module

Advisory pedagogical actions derived from mastery and recent accuracy.
"""

from curriculum.action_policy import ActionPolicy, count_consecutive_successes

__all__ = [
    "ActionPolicy",
    "count_consecutive_successes",
]
