import numpy as np
import pytest

from constants import FIREWORK_BURSTS, FORCED_TRANSITIONS
from particle import Particle
from transitions import (
    ALL_EFFECTS, TransitionContext, TransitionEffect, choose_effect,
    kick_outward, parse_effect, separation_vectors
)


def test_parse_effect_accepts_tags_and_falls_back():
    assert parse_effect("schoolWide") is TransitionEffect.SCHOOL_WIDE
    assert parse_effect("swan") is TransitionEffect.SWAN
    assert parse_effect("tornado") is TransitionEffect.NONE
    assert parse_effect(None) is TransitionEffect.NONE
    assert parse_effect(TransitionEffect.SCHOOL) is TransitionEffect.SCHOOL


@pytest.mark.parametrize("token,tag", sorted(FORCED_TRANSITIONS.items()))
def test_forced_effects_ignore_randomness(token, tag):
    for seed in range(20):
        assert choose_effect(token, np.random.default_rng(seed)).value == tag


def test_castle_always_leaves_with_fireworks():
    for seed in range(50):
        assert choose_effect("CASTLE", np.random.default_rng(seed)) is TransitionEffect.FIREWORKS


def test_random_choice_covers_every_effect():
    rng = np.random.default_rng(0)
    seen = {choose_effect("LOVE", rng) for _ in range(300)}
    assert seen == set(ALL_EFFECTS)


class TestTransitionContext:
    def particles(self, rng, n=30):
        return [
            Particle(rng.uniform(0, 800), rng.uniform(0, 600), 0, np.array([0.5, 0.0]))
            for _ in range(n)
        ]

    def start(self, effect, rng, particles=()):
        return TransitionContext.start(
            effect, 1000.0, 5000.0, (800, 600), np.array([400.0, 300.0]), particles, rng
        )

    def test_fireworks_staggered_bursts(self, rng):
        context = self.start(TransitionEffect.FIREWORKS, rng)
        assert len(context.bursts) == FIREWORK_BURSTS
        starts = [b.start_ms for b in context.bursts]
        assert starts == [1000.0, 2250.0, 3500.0, 4750.0]
        for b in context.bursts:
            assert 160 <= b.position[0] <= 640
            assert 120 <= b.position[1] <= 480

    @pytest.mark.parametrize("effect,max_angle", [
        (TransitionEffect.SCHOOL, np.pi / 6),
        (TransitionEffect.SCHOOL_WIDE, np.pi / 4),
    ])
    def test_school_heading(self, rng, effect, max_angle):
        context = self.start(effect, rng)
        assert np.hypot(*context.heading) == pytest.approx(1.0)
        assert abs(np.arctan2(context.heading[1], context.heading[0])) <= max_angle

    def test_explosion_kicks_velocities_outward(self, rng):
        particles = self.particles(rng)
        self.start(TransitionEffect.EXPLOSION, rng, particles)
        for p in particles:
            speed = np.hypot(*p.vel)
            assert 4.0 <= speed <= 7.0
            outward = p.pos - np.array([400.0, 300.0])
            if np.hypot(*outward) >= 10:
                assert np.dot(outward, p.vel) > 0

    def test_other_effects_leave_velocities_alone(self, rng):
        particles = self.particles(rng)
        self.start(TransitionEffect.SWAN, rng, particles)
        assert all(np.array_equal(p.vel, [0.5, 0.0]) for p in particles)

    def test_is_active_for_bounded_duration(self, rng):
        context = self.start(TransitionEffect.SWAN, rng)
        assert context.is_active(1000.0)
        assert context.is_active(5999.0)
        assert not context.is_active(6000.0)


def test_kick_near_centre_gets_random_direction(rng):
    p = Particle(401.0, 300.0, 0, np.zeros(2))
    kick_outward([p], np.array([400.0, 300.0]), rng)
    assert 4.0 <= np.hypot(*p.vel) <= 7.0


class TestSeparation:
    def test_pair_pushes_apart_inverse_distance(self):
        positions = np.array([[0.0, 0.0], [10.0, 0.0]])
        vectors, counts = separation_vectors(positions, 40.0)
        assert list(counts) == [1, 1]
        assert np.allclose(vectors[0], [-0.1, 0.0])
        assert np.allclose(vectors[1], [0.1, 0.0])

    def test_far_particles_are_ignored(self):
        positions = np.array([[0.0, 0.0], [100.0, 0.0], [0.0, 45.0]])
        vectors, counts = separation_vectors(positions, 40.0)
        assert list(counts) == [0, 0, 0]
        assert np.array_equal(vectors, np.zeros((3, 2)))

    def test_coincident_particles_are_skipped(self):
        positions = np.array([[5.0, 5.0], [5.0, 5.0]])
        vectors, counts = separation_vectors(positions, 40.0)
        assert list(counts) == [0, 0]

    def test_average_over_neighbours(self):
        positions = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 20.0]])
        vectors, counts = separation_vectors(positions, 40.0)
        assert counts[0] == 2
        expected = (np.array([-0.1, 0.0]) + np.array([0.0, -0.05])) / 2
        assert np.allclose(vectors[0], expected)

    def test_empty_input(self):
        vectors, counts = separation_vectors(np.zeros((0, 2)), 40.0)
        assert vectors.shape == (0, 2)
        assert counts.shape == (0,)
