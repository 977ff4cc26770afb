"""
Verlet particle physics with distance constraints.

Velocity is implicit (current minus previous position). Each step
integrates the free particles, clamps them into the world bounds, then
relaxes every constraint a fixed number of times. More iterations give a
stiffer figure at a higher cost per frame.
"""

import logging
import math

from nodefolio.core.config import PhysicsSettings
from nodefolio.core.errors import DegenerateConstraintError

logger = logging.getLogger(__name__)

# Distances below this are treated as a collapsed constraint
EPSILON = 1e-9


class Particle:
    """A point mass with an implicit velocity."""

    __slots__ = ("x", "y", "old_x", "old_y", "pinned", "radius")

    def __init__(self, x: float, y: float, pinned: bool = False, radius: float = 6.0):
        self.x = x
        self.y = y
        self.old_x = x
        self.old_y = y
        self.pinned = pinned
        self.radius = radius

    @property
    def velocity(self) -> tuple[float, float]:
        return (self.x - self.old_x, self.y - self.old_y)

    def integrate(self, dt: float, gravity: tuple[float, float]) -> None:
        if self.pinned:
            return
        vx, vy = self.velocity
        self.old_x, self.old_y = self.x, self.y
        self.x += vx + gravity[0] * dt * dt
        self.y += vy + gravity[1] * dt * dt

    def constrain(self, width: float, height: float) -> None:
        """Clamp into [radius, bound - radius] on both axes. No bounce."""
        if self.pinned:
            return
        self.x = min(max(self.x, self.radius), width - self.radius)
        self.y = min(max(self.y, self.radius), height - self.radius)

    def set_position(self, x: float, y: float, keep_velocity: bool = False) -> None:
        if keep_velocity:
            vx, vy = self.velocity
            self.old_x, self.old_y = x - vx, y - vy
        else:
            self.old_x, self.old_y = x, y
        self.x, self.y = x, y

    def distance_to(self, px: float, py: float) -> float:
        return math.hypot(self.x - px, self.y - py)

    def contains(self, px: float, py: float) -> bool:
        """Grab test; the hit area is twice the visual radius."""
        return self.distance_to(px, py) < self.radius * 2

    def __repr__(self) -> str:
        pin = ", pinned" if self.pinned else ""
        return f"Particle({self.x:.2f}, {self.y:.2f}{pin})"


class Constraint:
    """
    Distance constraint between two particles.

    Args:
        a: First particle
        b: Second particle
        rest_length: Target distance. Defaults to the current distance.
        stiffness: Fraction of the error corrected per relaxation, in [0, 1]
    """

    def __init__(
        self,
        a: Particle,
        b: Particle,
        rest_length: float | None = None,
        stiffness: float = 0.5,
    ):
        if not 0.0 <= stiffness <= 1.0:
            raise ValueError(f"stiffness must be in [0, 1], got {stiffness}")
        self.a = a
        self.b = b
        self.rest_length = (
            rest_length if rest_length is not None else math.hypot(b.x - a.x, b.y - a.y)
        )
        self.stiffness = stiffness

    def length(self) -> float:
        return math.hypot(self.b.x - self.a.x, self.b.y - self.a.y)

    def relax(self) -> None:
        """
        Move the endpoints toward the rest length.

        Raises:
            DegenerateConstraintError: If the endpoints coincide
        """
        dx = self.b.x - self.a.x
        dy = self.b.y - self.a.y
        dist = math.hypot(dx, dy)
        if dist < EPSILON:
            raise DegenerateConstraintError(
                f"Constraint collapsed ({dist:.3g} < {EPSILON})"
            )
        percent = self.stiffness * (self.rest_length - dist) / dist
        if self.a.pinned and self.b.pinned:
            return
        if self.a.pinned or self.b.pinned:
            # The free endpoint absorbs the whole correction
            ox, oy = dx * percent, dy * percent
        else:
            ox, oy = dx * percent * 0.5, dy * percent * 0.5
        if not self.a.pinned:
            self.a.x -= ox
            self.a.y -= oy
        if not self.b.pinned:
            self.b.x += ox
            self.b.y += oy


class World:
    """
    A bounded set of particles and constraints.

    Example:
        >>> world = World(200, 200, gravity=(0.0, 400.0))
        >>> a = world.add_particle(Particle(100, 50, pinned=True))
        >>> b = world.add_particle(Particle(100, 80))
        >>> _ = world.add_constraint(Constraint(a, b))
        >>> world.step(1 / 60)
    """

    def __init__(
        self,
        width: float,
        height: float,
        gravity: tuple[float, float] = (0.0, 400.0),
        iterations: int = 3,
    ):
        self.width = width
        self.height = height
        self.gravity = gravity
        self.iterations = iterations
        self.particles: list[Particle] = []
        self.constraints: list[Constraint] = []
        self.degenerate_count = 0

    def add_particle(self, particle: Particle) -> Particle:
        self.particles.append(particle)
        return particle

    def add_constraint(self, constraint: Constraint) -> Constraint:
        self.constraints.append(constraint)
        return constraint

    def set_bounds(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def step(self, dt: float) -> None:
        """Integrate, clamp, then relax the constraints ``iterations`` times."""
        for p in self.particles:
            p.integrate(dt, self.gravity)
            p.constrain(self.width, self.height)

        for _ in range(self.iterations):
            self.relax()

    def relax(self) -> None:
        """Run one relaxation pass over every constraint."""
        for c in self.constraints:
            try:
                c.relax()
            except DegenerateConstraintError:
                self.degenerate_count += 1
                logger.debug("Skipping degenerate constraint %r-%r", c.a, c.b)


class Ragdoll(World):
    """
    Articulated stick figure with a pinned head.

    Particle order: head, neck, shoulders (L, R), hips (L, R), elbow/hand L,
    elbow/hand R, knee/foot L, knee/foot R.
    """

    def __init__(
        self,
        center_x: float,
        center_y: float,
        scale: float = 1.0,
        width: float = 700,
        height: float = 450,
        gravity: tuple[float, float] = (0.0, 400.0),
        iterations: int = 3,
        stiffness: float = 0.5,
    ):
        super().__init__(width, height, gravity, iterations)
        self.scale = scale
        self.stiffness = stiffness
        self.head_radius = 15 * scale
        self.dragging: Particle | None = None
        self._build(center_x, center_y, scale)

    @property
    def head(self) -> Particle:
        return self.particles[0]

    def _stick(self, a: Particle, b: Particle, length: float | None = None) -> None:
        self.add_constraint(Constraint(a, b, length, self.stiffness))

    def _build(self, cx: float, cy: float, s: float) -> None:
        torso_h = 40 * s
        arm_l = 30 * s
        leg_l = 35 * s
        add = self.add_particle

        head = add(Particle(cx, cy - torso_h / 2 - self.head_radius, pinned=True))
        neck = add(Particle(cx, cy - torso_h / 2))
        shoulder_l = add(Particle(cx - 12 * s, cy - torso_h / 2 + 5 * s))
        shoulder_r = add(Particle(cx + 12 * s, cy - torso_h / 2 + 5 * s))
        hip_l = add(Particle(cx - 8 * s, cy + torso_h / 2))
        hip_r = add(Particle(cx + 8 * s, cy + torso_h / 2))
        elbow_l = add(Particle(shoulder_l.x - arm_l * 0.5, shoulder_l.y + arm_l * 0.3))
        hand_l = add(Particle(shoulder_l.x - arm_l, shoulder_l.y + arm_l * 0.6))
        elbow_r = add(Particle(shoulder_r.x + arm_l * 0.5, shoulder_r.y + arm_l * 0.3))
        hand_r = add(Particle(shoulder_r.x + arm_l, shoulder_r.y + arm_l * 0.6))
        knee_l = add(Particle(hip_l.x, hip_l.y + leg_l * 0.5))
        foot_l = add(Particle(hip_l.x, hip_l.y + leg_l))
        knee_r = add(Particle(hip_r.x, hip_r.y + leg_l * 0.5))
        foot_r = add(Particle(hip_r.x, hip_r.y + leg_l))

        self._stick(head, neck)
        # torso
        self._stick(neck, shoulder_l, 12 * s)
        self._stick(neck, shoulder_r, 12 * s)
        self._stick(shoulder_l, hip_l, torso_h * 0.6)
        self._stick(shoulder_r, hip_r, torso_h * 0.6)
        self._stick(hip_l, hip_r, 16 * s)
        self._stick(shoulder_l, shoulder_r, 24 * s)
        # limbs
        self._stick(shoulder_l, elbow_l)
        self._stick(elbow_l, hand_l)
        self._stick(shoulder_r, elbow_r)
        self._stick(elbow_r, hand_r)
        self._stick(hip_l, knee_l)
        self._stick(knee_l, foot_l)
        self._stick(hip_r, knee_r)
        self._stick(knee_r, foot_r)

    def start_drag(self, x: float, y: float) -> bool:
        """Grab the nearest free particle whose hit area contains (x, y)."""
        candidates = [p for p in self.particles if not p.pinned and p.contains(x, y)]
        if not candidates:
            return False
        self.dragging = min(candidates, key=lambda p: p.distance_to(x, y))
        return True

    def drag(self, x: float, y: float) -> None:
        """Pin the dragged particle to the pointer and zero its velocity."""
        if self.dragging is not None:
            self.dragging.set_position(x, y)

    def stop_drag(self) -> None:
        self.dragging = None

    def move_head(self, x: float, y: float) -> None:
        self.head.set_position(x, y)


def make_world(width: float, height: float, settings: PhysicsSettings | None = None) -> World:
    """Build an empty world using the configured gravity and iteration count."""
    settings = settings or PhysicsSettings()
    return World(width, height, gravity=(0.0, settings.gravity_y), iterations=settings.iterations)
