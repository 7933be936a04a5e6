"""
Deep RL Arena - Source Package
==============================

Temporal-difference training core for multi-agent, tick-based simulations.

Modules:
    ai/    - Frames, replay memory, exploration, evaluator, trainer, brains
    sim/   - Arena simulation that produces frames and rewards for the core
    utils/ - Logging
"""

__version__ = "1.0.0"
