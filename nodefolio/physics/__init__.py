"""
Physics module - Verlet particles and distance constraints.
"""

from nodefolio.physics.verlet import (
    EPSILON,
    Particle,
    Constraint,
    World,
    Ragdoll,
    make_world,
)

__all__ = [
    "EPSILON",
    "Particle",
    "Constraint",
    "World",
    "Ragdoll",
    "make_world",
]
