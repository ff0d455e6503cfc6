"""
arena - Core Resource Exchange Logic

This package contains the single-day simulation cycle for the resource
exchange arena: agents request time slots, receive a random allocation
under a capacity constraint, trade slots pairwise, and imitate better
performing peers at the end of the day.

Modules:
    pool: The day's finite multiset of allocatable time slots
    satisfaction: Pure satisfaction metrics (actual, optimum, per type)
    exchange: One round of pairwise slot trading
    social_learning: End-of-day strategy imitation
    day: The day orchestrator and its metrics adapter
    simulation: Multi-day driver returning pandas DataFrames
"""

__version__ = "1.0.0"
