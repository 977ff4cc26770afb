"""
Tests for the Verlet physics module.
"""

import pytest

from nodefolio.core.config import PhysicsSettings
from nodefolio.core.errors import DegenerateConstraintError
from nodefolio.physics import Constraint, Particle, Ragdoll, World, make_world


class TestParticle:
    """Tests for particle integration and bounds."""

    def test_integrate_from_rest(self):
        """Test one step from rest moves by gravity * dt^2."""
        p = Particle(10.0, 10.0)
        p.integrate(0.1, (0.0, 400.0))
        assert p.y == pytest.approx(14.0)
        assert p.velocity == pytest.approx((0.0, 4.0))

    def test_velocity_carries_over(self):
        """Test the implicit velocity keeps the particle moving."""
        p = Particle(0.0, 0.0)
        p.old_x = -2.0
        p.integrate(0.1, (0.0, 0.0))
        assert p.x == pytest.approx(2.0)

    def test_pinned_particle_never_moves(self):
        """Test pinned particles ignore gravity and bounds."""
        p = Particle(-50.0, -50.0, pinned=True)
        p.integrate(1.0, (100.0, 100.0))
        p.constrain(10, 10)
        assert (p.x, p.y) == (-50.0, -50.0)

    def test_constrain_clamps_with_radius(self):
        """Test particles are clamped radius-inside the bounds."""
        p = Particle(-5.0, 500.0, radius=6.0)
        p.constrain(100, 200)
        assert (p.x, p.y) == (6.0, 194.0)

    def test_set_position(self):
        """Test teleporting with and without keeping velocity."""
        p = Particle(0.0, 0.0)
        p.old_x = -1.0
        p.set_position(10.0, 10.0, keep_velocity=True)
        assert p.velocity == (1.0, 0.0)
        p.set_position(20.0, 20.0)
        assert p.velocity == (0.0, 0.0)

    def test_contains(self):
        """Test the grab area is twice the radius."""
        p = Particle(0.0, 0.0, radius=5.0)
        assert p.contains(9.0, 0.0)
        assert not p.contains(10.0, 0.0)


class TestConstraint:
    """Tests for distance constraint relaxation."""

    def test_default_rest_length(self):
        """Test the rest length defaults to the initial distance."""
        c = Constraint(Particle(0, 0), Particle(3, 4))
        assert c.rest_length == 5.0

    def test_converges_without_overshoot(self):
        """Test each relaxation halves the error from the stretched side."""
        a, b = Particle(0.0, 0.0), Particle(20.0, 0.0)
        c = Constraint(a, b, rest_length=10.0, stiffness=0.5)
        lengths = []
        for _ in range(3):
            c.relax()
            lengths.append(c.length())
        assert lengths == pytest.approx([15.0, 12.5, 11.25])
        assert all(length > 10.0 for length in lengths)
        # the midpoint does not drift
        assert (a.x + b.x) / 2 == pytest.approx(10.0)

    def test_compressed_constraint_expands(self):
        """Test a too-short constraint pushes apart."""
        a, b = Particle(0.0, 0.0), Particle(0.0, 4.0)
        c = Constraint(a, b, rest_length=8.0, stiffness=1.0)
        c.relax()
        assert c.length() == pytest.approx(8.0)

    def test_pinned_endpoint_takes_no_correction(self):
        """Test the free end absorbs the whole correction."""
        a, b = Particle(0.0, 0.0, pinned=True), Particle(20.0, 0.0)
        c = Constraint(a, b, rest_length=10.0, stiffness=0.5)
        c.relax()
        assert (a.x, a.y) == (0.0, 0.0)
        assert b.x == pytest.approx(15.0)

    def test_both_pinned(self):
        """Test two pinned endpoints are left alone."""
        a, b = Particle(0.0, 0.0, pinned=True), Particle(20.0, 0.0, pinned=True)
        Constraint(a, b, rest_length=10.0).relax()
        assert (a.x, b.x) == (0.0, 20.0)

    def test_degenerate(self):
        """Test coincident endpoints raise instead of dividing by zero."""
        c = Constraint(Particle(1.0, 1.0), Particle(1.0, 1.0), rest_length=5.0)
        with pytest.raises(DegenerateConstraintError):
            c.relax()

    @pytest.mark.parametrize("stiffness", [-0.1, 1.5])
    def test_invalid_stiffness(self, stiffness):
        """Test stiffness outside [0, 1] is rejected."""
        with pytest.raises(ValueError):
            Constraint(Particle(0, 0), Particle(1, 0), stiffness=stiffness)


class TestWorld:
    """Tests for stepping a world."""

    def test_degenerate_constraints_are_counted(self):
        """Test a collapsed constraint is skipped and counted."""
        world = World(100, 100, gravity=(0.0, 0.0), iterations=2)
        a = world.add_particle(Particle(50, 50))
        b = world.add_particle(Particle(50, 50))
        world.add_constraint(Constraint(a, b, rest_length=5.0))
        world.step(1 / 60)
        assert world.degenerate_count == 2

    def test_pendulum_stays_attached(self):
        """Test a hanging particle keeps near its rest length."""
        world = World(200, 200, gravity=(0.0, 400.0), iterations=10)
        anchor = world.add_particle(Particle(100, 50, pinned=True))
        bob = world.add_particle(Particle(100, 80))
        link = world.add_constraint(Constraint(anchor, bob, stiffness=1.0))
        for _ in range(60):
            world.step(1 / 60)
        assert link.length() == pytest.approx(30.0, abs=0.5)
        assert (anchor.x, anchor.y) == (100, 50)

    def test_make_world(self):
        """Test the world picks up configured gravity and iterations."""
        world = make_world(300, 200, PhysicsSettings(gravity_y=100.0, iterations=7))
        assert world.gravity == (0.0, 100.0)
        assert world.iterations == 7
        assert (world.width, world.height) == (300, 200)


class TestRagdoll:
    """Tests for the stick figure."""

    @pytest.fixture
    def ragdoll(self):
        return Ragdoll(350, 225, scale=1.0)

    def test_structure(self, ragdoll):
        """Test the figure has its particles and sticks with a pinned head."""
        assert len(ragdoll.particles) == 14
        assert len(ragdoll.constraints) == 15
        assert ragdoll.head.pinned
        assert [p.pinned for p in ragdoll.particles[1:]] == [False] * 13
        assert ragdoll.head_radius == 15.0

    def test_step_clamps_into_bounds(self):
        """Test free particles thrown outside the world are pulled back in."""
        ragdoll = Ragdoll(350, 225, scale=1.0, iterations=0)
        for p in ragdoll.particles[1:]:
            p.set_position(-100.0, 1000.0)
        ragdoll.step(1 / 60)
        for p in ragdoll.particles[1:]:
            assert (p.x, p.y) == (p.radius, ragdoll.height - p.radius)

    def test_set_bounds(self, ragdoll):
        """Test resizing the world moves the clamp limits."""
        ragdoll.iterations = 0
        ragdoll.set_bounds(100, 80)
        ragdoll.step(1 / 60)
        foot = ragdoll.particles[11]
        assert (foot.x, foot.y) == (100 - foot.radius, 80 - foot.radius)

    def test_head_stays_pinned(self, ragdoll):
        """Test stepping never moves the head."""
        head = (ragdoll.head.x, ragdoll.head.y)
        for _ in range(30):
            ragdoll.step(1 / 60)
        assert (ragdoll.head.x, ragdoll.head.y) == head

    def test_drag_nearest_free_particle(self, ragdoll):
        """Test dragging picks a free particle and ignores the head."""
        head = ragdoll.head
        assert not ragdoll.start_drag(head.x, head.y - 14)
        hand = ragdoll.particles[7]
        assert ragdoll.start_drag(hand.x + 1, hand.y)
        assert ragdoll.dragging is hand
        ragdoll.drag(10, 10)
        assert (hand.x, hand.y) == (10, 10)
        ragdoll.stop_drag()
        assert ragdoll.dragging is None

    def test_move_head(self, ragdoll):
        """Test the head can be repositioned explicitly."""
        ragdoll.move_head(100, 40)
        assert (ragdoll.head.x, ragdoll.head.y) == (100, 40)
