import numpy as np
import pytest

from conftest import EmptyRasterizer
from constants import MAX_PARTICLES, MIN_CANVAS_SIZE, MIN_PARTICLES, SHAPES
from simulation import CycleController, CyclePhase, Simulation
from transitions import TransitionEffect


CYCLE = {"cycle_duration_ms": 30000, "roam_duration_ms": 10000, "transition_duration_ms": 5000}


def controller(shapes=("LOVE", "CASTLE", "EOLA"), seed=0):
    return CycleController(CYCLE, shapes, np.random.default_rng(seed))


@pytest.fixture
def sim(sim_params, block_rasterizer):
    return Simulation(sim_params, 800, 600, rasterizer=block_rasterizer)


class TestCycleController:
    def test_roams_first(self):
        c = controller()
        update = c.update(5000)
        assert c.phase is CyclePhase.ROAMING
        assert not update.phase_changed
        assert c.shape_token == "LOVE"

    def test_entering_assembly_advances_shape(self):
        c = controller()
        c.update(5000)
        update = c.update(10001)
        assert c.phase is CyclePhase.ASSEMBLING
        assert update.phase_changed and update.shape_changed
        assert c.shape_token == "CASTLE"

    def test_shape_index_wraps(self):
        c = controller(shapes=("A", "B"))
        for cycle in range(3):
            c.update(cycle * 30000 + 5000)
            c.update(cycle * 30000 + 11000)
        # Three assemblies starting from index 0: B, A, B.
        assert c.shape_token == "B"

    def test_leaving_castle_plays_fireworks(self):
        for seed in range(10):
            c = controller(seed=seed)
            c.update(11000)
            assert c.shape_token == "CASTLE"
            update = c.update(30100)
            assert c.phase is CyclePhase.ROAMING
            assert update.transition_started
            assert c.effect is TransitionEffect.FIREWORKS

    def test_transition_is_reported_from_next_update_and_expires(self):
        c = controller()
        c.update(11000)
        started = c.update(30100)
        assert not started.in_transition
        assert c.update(31000).in_transition
        assert c.update(35099).in_transition
        ended = c.update(35100)
        assert not ended.in_transition
        assert ended.transition_ended
        assert c.effect is TransitionEffect.NONE

    def test_only_leaving_a_shape_starts_a_transition(self):
        c = controller()
        update = c.update(11000)
        assert not update.transition_started
        assert c.effect is TransitionEffect.NONE

    def test_manual_shift_assembles_immediately(self):
        c = controller()
        c.update(11000)
        c.update(30100)
        c.shift_shape(1)
        assert not c.auto_cycle
        assert c.phase is CyclePhase.ASSEMBLING
        assert c.effect is TransitionEffect.NONE
        assert c.shape_token == "EOLA"
        # The timer no longer drives the phase.
        update = c.update(31000)
        assert c.phase is CyclePhase.ASSEMBLING
        assert not update.phase_changed

    def test_manual_shift_backwards_wraps(self):
        c = controller()
        c.shift_shape(-1)
        assert c.shape_token == "EOLA"

    def test_manual_mode_never_starts_transitions(self):
        c = controller()
        c.shift_shape(1)
        c.assembling = False
        update = c.update(20000)
        assert update.phase_changed
        assert not update.transition_started

    def test_resume_auto(self):
        c = controller()
        c.shift_shape(1)
        c.resume_auto()
        assert c.auto_cycle
        c.update(5000)
        assert c.phase is CyclePhase.ROAMING

    @pytest.mark.parametrize("params", [
        {"cycle_duration_ms": 1000, "roam_duration_ms": 1000},
        {"cycle_duration_ms": 1000, "roam_duration_ms": 2000},
        {"transition_duration_ms": 0},
        {"roam_duration_ms": -5},
    ])
    def test_invalid_durations_raise(self, params):
        with pytest.raises(ValueError):
            CycleController(params, SHAPES, np.random.default_rng(0))

    def test_empty_shape_list_raises(self):
        with pytest.raises(ValueError):
            CycleController(CYCLE, [], np.random.default_rng(0))


class TestSimulation:
    def test_initial_state(self, sim):
        assert sim.phase is CyclePhase.ROAMING
        assert sim.shape_token == SHAPES[0]
        assert sim.effect is TransitionEffect.NONE
        assert sim.particle_count == 150
        assert len(sim.allocator.targets) == 150
        assert all(p.target is None for p in sim.swarm)

    def test_step_moves_particles_and_keeps_count(self, sim):
        before = sim.swarm.positions()
        for t in range(0, 200, 16):
            sim.step(t)
        assert sim.particle_count == 150
        assert sim.frame == len(range(0, 200, 16))
        assert not np.array_equal(before, sim.swarm.positions())

    def test_speeds_stay_capped(self, sim):
        for t in range(0, 500, 16):
            sim.step(t)
        speeds = np.linalg.norm(sim.swarm.velocities(), axis=1)
        assert speeds.max() <= sim.max_speed + 1e-9

    def test_assembly_assigns_targets(self, sim):
        sim.step(0)
        sim.step(10001)
        assert sim.phase is CyclePhase.ASSEMBLING
        assert sim.shape_token == SHAPES[1]
        assert all(p.target is not None for p in sim.swarm)

    def test_leaving_shape_clears_targets(self, sim):
        sim.step(10001)
        sim.step(30001)
        assert sim.phase is CyclePhase.ROAMING
        assert all(p.target is None for p in sim.swarm)

    def test_manual_next_shape_assembles_without_timer(self, sim, block_rasterizer):
        calls_before = len(block_rasterizer.calls)
        sim.next_shape()
        assert sim.phase is CyclePhase.ASSEMBLING
        assert not sim.auto_cycle
        assert sim.shape_token == SHAPES[1]
        assert len(block_rasterizer.calls) == calls_before + 1
        assert block_rasterizer.calls[-1][0] == SHAPES[1]
        assert all(p.target is not None for p in sim.swarm)

    def test_previous_shape_wraps(self, sim):
        sim.previous_shape()
        assert sim.shape_token == SHAPES[-1]

    def test_manual_shift_cancels_transition(self, sim):
        sim.controller.shape_index = SHAPES.index("CASTLE") - 1
        sim.step(10001)
        sim.step(30001)
        assert sim.effect is TransitionEffect.FIREWORKS
        assert sim.transition is not None
        sim.next_shape()
        assert sim.effect is TransitionEffect.NONE
        assert sim.transition is None

    def test_transition_runs_and_ends(self, sim):
        sim.controller.shape_index = SHAPES.index("UNIVERSAL") - 1
        sim.step(10001)
        sim.step(30001)
        assert sim.effect is TransitionEffect.SCHOOL_WIDE
        sim.step(30017)
        sim.step(33000)
        assert sim.transition is not None
        sim.step(35002)
        assert sim.effect is TransitionEffect.NONE
        assert sim.transition is None

    def test_explosion_kick_is_capped_by_integration(self, sim):
        sim.controller.shape_index = SHAPES.index("EPIC") - 1
        sim.step(10001)
        sim.step(30001)
        assert sim.effect is TransitionEffect.EXPLOSION
        # The 4-7 kick overshoots the speed cap, so every particle leaves
        # the start tick at exactly max speed.
        speeds = np.linalg.norm(sim.swarm.velocities(), axis=1)
        assert np.allclose(speeds, sim.max_speed)

    def test_set_particle_count_clamps_and_retargets(self, sim):
        sim.next_shape()
        assert sim.set_particle_count(10) == MIN_PARTICLES
        assert sim.set_particle_count(99999) == MAX_PARTICLES
        assert len(sim.allocator.targets) == MAX_PARTICLES
        assert all(p.target is not None for p in sim.swarm)

    def test_add_and_remove_step_by_hundred(self, sim):
        assert sim.add_particles() == 250
        assert sim.remove_particles() == 150
        assert sim.remove_particles() == MIN_PARTICLES

    def test_shrink_keeps_head_of_swarm(self, sim_params, block_rasterizer):
        sim_params = dict(sim_params, particle_count=300)
        sim = Simulation(sim_params, 800, 600, rasterizer=block_rasterizer)
        head = [(p.pos.copy(), p.vel.copy()) for p in sim.swarm.particles[:200]]
        sim.set_particle_count(200)
        assert sim.particle_count == 200
        for p, (pos, vel) in zip(sim.swarm, head):
            assert np.array_equal(p.pos, pos)
            assert np.array_equal(p.vel, vel)

    def test_resize_refits_and_clamps(self, sim):
        sim.next_shape()
        sim.resize(0, -20)
        assert (sim.width, sim.height) == (MIN_CANVAS_SIZE, MIN_CANVAS_SIZE)
        assert np.all(np.isfinite(sim.allocator.targets.points))
        sim.resize(1600, 900)
        points = sim.allocator.targets.points
        assert points[:, 0].min() >= sim.box.cx - sim.box.width / 2 - 1e-6
        assert points[:, 0].max() <= sim.box.cx + sim.box.width / 2 + 1e-6
        assert all(p.target is not None for p in sim.swarm)

    def test_resize_while_roaming_keeps_particles_free(self, sim):
        sim.resize(1024, 768)
        assert all(p.target is None for p in sim.swarm)

    def test_toggle_detail_recomputes(self, sim, block_rasterizer):
        sim.toggle_detail()
        assert sim.high_detail
        assert block_rasterizer.calls[-1][1:] == (1280, 400)
        sim.toggle_detail()
        assert not sim.high_detail

    def test_empty_mask_leaves_swarm_roaming(self, sim_params):
        sim = Simulation(sim_params, 800, 600, rasterizer=EmptyRasterizer())
        sim.next_shape()
        assert sim.allocator.targets.is_empty
        assert all(p.target is None for p in sim.swarm)
        sim.step(0)
        assert sim.particle_count == 150

    def test_seeded_runs_are_reproducible(self, sim_params, block_rasterizer):
        runs = []
        for _ in range(2):
            sim = Simulation(sim_params, 800, 600, rasterizer=block_rasterizer)
            for t in (0, 16, 10001, 10017):
                sim.step(t)
            runs.append(sim.swarm.positions())
        assert np.array_equal(runs[0], runs[1])

    def test_status_reports_observables(self, sim):
        sim.next_shape()
        status = sim.status()
        assert status == {
            "phase": "assembling",
            "shape": SHAPES[1],
            "effect": "none",
            "particles": 150,
            "auto_cycle": False,
            "high_detail": False,
        }
        snap = sim.snapshot()
        assert snap["positions"].shape == (150, 2)
        assert snap["velocities"].shape == (150, 2)
        assert snap["hues"].shape == (150,)

    def test_unchanged_inputs_skip_rasterizing(self, sim, block_rasterizer):
        calls = len(block_rasterizer.calls)
        sim.set_detail(False)
        sim.resize(800, 600)
        assert len(block_rasterizer.calls) == calls

    def test_step_samples_headings_in_one_batch(self, sim, monkeypatch):
        calls = []
        batch = sim.field.angle_many

        def counting_batch(positions, frame):
            calls.append(len(positions))
            return batch(positions, frame)

        def no_scalar_lookup(*args):
            raise AssertionError("per-particle flow field lookup during step")

        monkeypatch.setattr(sim.field, "angle_many", counting_batch)
        monkeypatch.setattr(sim.field, "angle", no_scalar_lookup)
        sim.step(0)
        sim.controller.shape_index = SHAPES.index("CASTLE") - 1
        sim.step(10001)
        sim.step(30001)
        sim.step(30017)
        assert sim.effect is TransitionEffect.FIREWORKS
        assert calls == [150] * 4

    def test_batched_headings_match_per_particle_wander(self, sim_params, block_rasterizer):
        batched = Simulation(sim_params, 800, 600, rasterizer=block_rasterizer)
        reference = Simulation(sim_params, 800, 600, rasterizer=block_rasterizer)
        for p in reference.swarm:
            p.wander(reference.field, reference.frame)
            p.integrate()
            p.wrap_bounds(reference.width, reference.height, reference.edge_margin)
        batched.step(0)
        assert np.allclose(batched.swarm.positions(), reference.swarm.positions())
