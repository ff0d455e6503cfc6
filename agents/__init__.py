"""
agents - Arena Participants

This package contains the agent entity and the strategy table it dispatches
on:
- base: the Agent (identity, strategy tag, requested/allocated slots)
- strategies: request and acceptance rules keyed by agent type
- factory: population construction
"""

__version__ = "1.0.0"
