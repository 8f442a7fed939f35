"""
Gravity Engine Test Suite — Stage 2: MEDIUM

Integration and behavior tests — do components work together correctly?

Tests:
    - Arena config loading and validation
    - Attractor registry edits and snapshots
    - Outcome-space sampler: axes, batching, publication, cancellation
    - Regeneration controller state machine and debouncing
    - Live launch events and the striker kick
    - Gymnasium launch environment
"""

import json
import math
from pathlib import Path

import numpy as np
import pytest
import yaml

from arena.envs.launch_env import LaunchEnv
from gravity_engine.bodies import Attractor, AttractorSnapshot
from gravity_engine.config import DEFAULT_ATTRACTORS, SimConfig, load_arena, make_config
from gravity_engine.controller import ControllerState, RegenerationController
from gravity_engine.errors import ConfigurationError
from gravity_engine.geometry import distance
from gravity_engine.live import LaunchEvent, LiveLaunch, Striker
from gravity_engine.registry import AttractorRegistry
from gravity_engine.sampler import (
    SamplerSession,
    SessionState,
    StatusKind,
    generate_outcome_grid,
    sample_axes,
)


CONFIGS_DIR = Path(__file__).resolve().parent.parent / "arena" / "configs"


# ============================================================
# 1. Configuration
# ============================================================

class TestArenaConfig:

    def test_default_arena_file_exists(self):
        assert (CONFIGS_DIR / "default_arena.yaml").exists()

    def test_default_arena_loads(self):
        cfg, attractors = load_arena(CONFIGS_DIR / "default_arena.yaml")
        assert cfg.gravity_constant == 5.0
        assert len(attractors) == 6
        assert sum(1 for a in attractors if a["is_target"]) == 1

    def test_missing_attractors_fall_back_to_defaults(self, tmp_path):
        path = tmp_path / "arena.yaml"
        path.write_text(yaml.safe_dump({"simulation": {"gravity_constant": 2.5}}))
        cfg, attractors = load_arena(path)
        assert cfg.gravity_constant == 2.5
        assert [a["id"] for a in attractors] == [a["id"] for a in DEFAULT_ATTRACTORS]

    def test_unknown_setting_rejected(self):
        with pytest.raises(ConfigurationError):
            make_config({"gravity": 5})

    def test_invalid_value_rejected(self):
        with pytest.raises(ConfigurationError):
            make_config({"time_step": 0})

    def test_default_launch_origin(self):
        assert SimConfig().launch_origin == (700.0, 750.0)

    def test_overrides_are_validated(self):
        with pytest.raises(ConfigurationError):
            SimConfig().with_overrides(batch_size=0)


# ============================================================
# 2. Attractor Registry
# ============================================================

class TestAttractorRegistry:

    def test_default_layout(self, default_registry):
        assert default_registry.count == 6
        assert default_registry.target.id == "target"

    def test_resize_is_clamped(self, default_registry):
        assert default_registry.resize("planet_0", 500.0).radius == 150.0
        assert default_registry.resize("planet_0", 1.0).radius == 10.0

    def test_wheel_resize_updates_mass(self, default_registry):
        planet = default_registry.get("planet_0")
        before = planet.mass
        assert default_registry.resize_by_wheel("planet_0", -1.0)
        assert planet.radius == 22.0
        assert planet.mass > before

    def test_wheel_resize_at_limit_reports_no_change(self, default_registry):
        default_registry.resize("planet_0", 10.0)
        assert not default_registry.resize_by_wheel("planet_0", 1.0)

    def test_pick(self, default_registry):
        assert default_registry.pick(696.0, 170.6).id == "target"
        assert default_registry.pick(5.0, 5.0) is None

    def test_move_unknown_id(self, default_registry):
        with pytest.raises(ConfigurationError):
            default_registry.move("nope", 1.0, 1.0)

    def test_snapshot_not_affected_by_later_moves(self, default_registry):
        snapshot = default_registry.snapshot()
        default_registry.move("target", 10.0, 10.0)
        assert snapshot.target.x == 696.0

    def test_json_export(self, default_registry):
        data = json.loads(default_registry.to_json())
        assert data["count"] == 6
        assert {"id", "x", "y", "radius", "mass", "is_target"} <= set(data["attractors"][0])

    def test_describe(self, default_registry):
        text = default_registry.describe(gravity_constant=5.0)
        assert "(TARGET)" in text
        assert "Gravity Constant: 5.0" in text
        assert AttractorRegistry().describe() == "No planets currently defined."


# ============================================================
# 3. Outcome-Space Sampler
# ============================================================

class TestSampler:

    def test_default_axes(self):
        angles, speeds = sample_axes(SimConfig())
        assert len(angles) == 72
        assert angles[1] == pytest.approx(5.0)
        assert len(speeds) == 20
        assert speeds[0] == pytest.approx(1.0)
        assert speeds[-1] == pytest.approx(15.0)

    def test_missing_target_refuses_to_run(self, small_grid_config):
        snapshot = AttractorSnapshot.from_attractors([Attractor(id="a", x=100, y=100, radius=10)])
        with pytest.raises(ConfigurationError):
            SamplerSession(snapshot, small_grid_config)

    def test_small_grid_outcomes(self, target_only_snapshot, small_grid_config):
        grid = generate_outcome_grid(target_only_snapshot, small_grid_config)
        assert grid.shape == (3, 4)
        # Column 1 is 90° (straight at the target): every speed hits
        assert np.all(grid.values[:, 1] == 0.0)
        # Column 3 is 270° (straight down): the fastest shot escapes
        assert grid.values[2, 3] == math.inf
        assert grid.min_finite == 0.0

    def test_grid_mapping(self, target_only_snapshot, small_grid_config):
        grid = generate_outcome_grid(target_only_snapshot, small_grid_config)
        vx, vy = grid.velocity_at(0, 1)
        assert vx == pytest.approx(0.0, abs=1e-12)
        assert vy == pytest.approx(-1.0)
        assert grid.nearest_cell(92.0, 14.0) == (2, 1)

    def test_batches_yield_control(self, target_only_snapshot):
        cfg = make_config({
            "launch_x": 700.0, "launch_y": 800.0,
            "angle_steps": 4, "speed_steps": 5, "batch_size": 10, "sim_steps": 200,
        })
        session = SamplerSession(target_only_snapshot, cfg)
        statuses = list(session)
        assert [s.kind for s in statuses] == [
            StatusKind.GENERATING, StatusKind.GENERATING, StatusKind.PUBLISHED,
        ]
        assert statuses[0].progress == pytest.approx(50.0)
        assert session.state == SessionState.COMPLETED

    def test_no_grid_before_completion(self, target_only_snapshot, small_grid_config):
        session = SamplerSession(target_only_snapshot, small_grid_config)
        session.step()
        assert session.state == SessionState.RUNNING
        assert session.grid is None

    def test_cancel_mid_generation(self, target_only_snapshot):
        """10x10 grid cancelled at sample 37: nothing published, rerun is deterministic."""
        cfg = make_config({
            "launch_x": 700.0, "launch_y": 800.0,
            "angle_steps": 10, "speed_steps": 10, "batch_size": 1, "sim_steps": 200,
        })
        session = SamplerSession(target_only_snapshot, cfg)
        for _ in range(37):
            session.step()
        assert session.processed == 37

        session.cancel()
        status = session.step()

        assert status.kind == StatusKind.CANCELLED
        assert session.state == SessionState.CANCELLED
        assert session.grid is None
        assert session.processed == 37

        first = SamplerSession(target_only_snapshot, cfg).run()
        second = SamplerSession(target_only_snapshot, cfg).run()
        assert first.values.size == 100
        assert np.array_equal(first.values, second.values)

    def test_published_min_max_ignore_failures(self, target_only_snapshot, small_grid_config):
        grid = generate_outcome_grid(target_only_snapshot, small_grid_config)
        finite = grid.values[np.isfinite(grid.values)]
        assert grid.min_finite == finite.min()
        assert grid.max_finite == finite.max()


# ============================================================
# 4. Regeneration Controller
# ============================================================

def _controller(registry, config, clock):
    statuses = []
    controller = RegenerationController(registry, config, clock=clock, listeners=[statuses.append])
    return controller, statuses


class TestRegenerationController:

    def test_regenerate_to_published(self, scenario_registry, small_grid_config, fake_clock):
        controller, statuses = _controller(scenario_registry, small_grid_config, fake_clock)
        assert controller.state == ControllerState.IDLE

        controller.regenerate()
        assert controller.state == ControllerState.GENERATING

        grid = controller.run_until_idle()
        assert controller.state == ControllerState.PUBLISHED
        assert grid is controller.grid
        assert grid.shape == (3, 4)
        assert statuses[-1].kind == StatusKind.PUBLISHED

    def test_invalidation_while_generating_restarts(self, scenario_registry, small_grid_config, fake_clock):
        controller, statuses = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.pump()
        first = controller.session

        controller.interaction_ended()
        assert controller.state == ControllerState.CANCELLING
        assert first.token.cancelled

        controller.pump()
        assert first.state == SessionState.CANCELLED
        assert controller.state == ControllerState.GENERATING
        assert controller.session is not first

        controller.run_until_idle()
        assert controller.state == ControllerState.PUBLISHED
        assert StatusKind.CANCELLED in [s.kind for s in statuses]

    def test_latest_configuration_wins(self, scenario_registry, small_grid_config, fake_clock):
        controller, _ = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.pump()
        first = controller.session

        controller.attractor_moved("target", 600.0, 100.0)
        assert controller.state == ControllerState.CANCELLING
        assert first.token.cancelled

        controller.attractor_moved("target", 650.0, 100.0)
        fake_clock.advance(0.5)
        controller.pump()
        assert first.state == SessionState.CANCELLED
        assert controller.state == ControllerState.IDLE
        assert controller.session is None

        fake_clock.advance(1.0)
        controller.pump()
        assert controller.state == ControllerState.GENERATING
        assert controller.session.snapshot.target.x == 650.0

    def test_edit_mid_pass_never_publishes_stale_grid(self, scenario_registry, small_grid_config, fake_clock):
        """The pass running when a planet moves is dropped, not published."""
        controller, statuses = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.pump()
        first = controller.session

        controller.attractor_moved("target", 500.0, 100.0)
        while not first.done:
            controller.pump()

        assert controller.state != ControllerState.PUBLISHED
        assert controller.grid is None
        assert first.grid is None
        assert StatusKind.PUBLISHED not in [s.kind for s in statuses]

        grid = controller.run_until_idle()
        expected = generate_outcome_grid(scenario_registry.snapshot(), small_grid_config)
        assert controller.state == ControllerState.PUBLISHED
        assert np.array_equal(grid.values, expected.values)

    def test_edit_clears_published_grid_and_marker(self, scenario_registry, small_grid_config, fake_clock):
        controller, statuses = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.run_until_idle()
        controller.record_kick(90.0, 8.0)
        assert controller.marker() is not None

        controller.attractor_resized("rock", 40.0)
        assert controller.state == ControllerState.IDLE
        assert controller.grid is None
        assert controller.marker() is None
        assert statuses[-1].kind == StatusKind.IDLE

    def test_debounced_gravity_change(self, scenario_registry, small_grid_config, fake_clock):
        controller, _ = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.run_until_idle()

        controller.gravity_changed(7.5)
        controller.pump()
        assert controller.state == ControllerState.IDLE
        assert controller.grid is None
        assert controller.session is None

        fake_clock.advance(1.0)
        controller.pump()
        assert controller.state == ControllerState.GENERATING
        assert controller.session.gravity_constant == 7.5

        controller.run_until_idle()
        assert controller.state == ControllerState.PUBLISHED
        assert controller.config.gravity_constant == 7.5

    def test_bursts_coalesce_into_one_session(self, scenario_registry, small_grid_config, fake_clock):
        controller, statuses = _controller(scenario_registry, small_grid_config, fake_clock)
        for radius in (52.0, 54.0, 56.0, 58.0, 60.0):
            controller.attractor_resized("target", radius)
            fake_clock.advance(0.2)
        fake_clock.advance(1.0)
        controller.run_until_idle()

        starts = [s for s in statuses if s.kind == StatusKind.GENERATING and s.message]
        assert len(starts) == 1
        assert controller.grid is not None

    def test_interaction_end_bypasses_debounce(self, scenario_registry, small_grid_config, fake_clock):
        controller, _ = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.attractor_moved("rock", 320.0, 460.0)
        controller.interaction_ended()
        assert controller.state == ControllerState.GENERATING

    def test_explicit_cancel(self, scenario_registry, small_grid_config, fake_clock):
        controller, _ = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.regenerate()
        controller.pump()
        controller.cancel()
        assert controller.state == ControllerState.CANCELLING

        controller.pump()
        assert controller.state == ControllerState.CANCELLED
        assert controller.grid is None
        assert not controller.busy

    def test_missing_target_reports_error(self, small_grid_config, fake_clock):
        registry = AttractorRegistry()
        registry.add_attractor("rock", 300.0, 300.0, 30.0)
        controller, statuses = _controller(registry, small_grid_config, fake_clock)

        with pytest.raises(ConfigurationError):
            controller.regenerate()
        assert controller.state == ControllerState.IDLE
        assert statuses[-1].kind == StatusKind.ERROR

    def test_marker_only_with_published_grid(self, scenario_registry, small_grid_config, fake_clock):
        controller, _ = _controller(scenario_registry, small_grid_config, fake_clock)
        controller.record_kick(90.0, 8.0)
        assert controller.marker() is None

        controller.regenerate()
        controller.run_until_idle()
        controller.record_kick(90.0, 8.0)
        assert controller.marker() == pytest.approx((0.25, 0.5))


# ============================================================
# 5. Live Launch
# ============================================================

class TestLiveLaunch:

    def test_straight_shot_hits(self, target_only_snapshot, scenario_config):
        launch = LiveLaunch(target_only_snapshot, scenario_config)
        launch.launch((0.0, -20.0))
        assert launch.run() == LaunchEvent.TARGET_HIT
        assert launch.event.success
        assert len(launch.trajectory) == launch.frames + 1

    def test_resting_projectile_closes_distance_every_frame(self, target_only_snapshot, scenario_config):
        launch = LiveLaunch(target_only_snapshot, scenario_config)
        launch.launch((0.0, 0.0))
        assert launch.run() == LaunchEvent.TARGET_HIT
        gaps = [distance(x, y, 700.0, 100.0) for x, y in launch.trajectory]
        assert all(a > b for a, b in zip(gaps, gaps[1:]))

    def test_obstacle_hit(self, blocked_snapshot, scenario_config):
        launch = LiveLaunch(blocked_snapshot, scenario_config)
        launch.launch((0.01, 0.0))
        assert launch.run() == LaunchEvent.OBSTACLE_HIT
        assert not launch.event.success

    def test_escape(self, target_only_snapshot, scenario_config):
        launch = LiveLaunch(target_only_snapshot, scenario_config)
        launch.launch((0.0, 15.0))
        assert launch.run() == LaunchEvent.ESCAPED
        assert launch.event.message == "Asteroid lost in space!"

    def test_graze(self, scenario_config):
        """Inside the success band of the surface and moving away: grazed."""
        target = Attractor(id="t", x=700.0, y=700.0, radius=50.0, is_target=True)
        cfg = scenario_config.with_overrides(success_threshold=40.0)
        launch = LiveLaunch(AttractorSnapshot.from_attractors([target]), cfg)
        launch.launch((0.0, 5.0))
        assert launch.tick() == LaunchEvent.TARGET_GRAZED

    def test_matches_classifier(self, blocked_snapshot, target_only_snapshot, scenario_config):
        """Live events agree with the sampler's outcome for the same launch."""
        from gravity_engine.classifier import simulate_trial

        for snapshot, velocity in [(target_only_snapshot, (0.0, -20.0)), (blocked_snapshot, (0.01, 0.0))]:
            launch = LiveLaunch(snapshot, scenario_config)
            launch.launch(velocity)
            event = launch.run()
            outcome = simulate_trial(velocity, snapshot, scenario_config)
            assert event.success == (outcome == 0.0)

    def test_no_target_refuses_to_start(self, scenario_config):
        snapshot = AttractorSnapshot.from_attractors([Attractor(id="a", x=100, y=100, radius=10)])
        with pytest.raises(ConfigurationError):
            LiveLaunch(snapshot, scenario_config)

    def test_single_launch_per_trial(self, target_only_snapshot, scenario_config):
        launch = LiveLaunch(target_only_snapshot, scenario_config)
        assert launch.tick() is None
        assert launch.launch((0.0, -20.0))
        assert not launch.launch((5.0, 5.0))

    def test_trail_is_bounded(self, target_only_snapshot, scenario_config):
        cfg = scenario_config.with_overrides(trail_length=5)
        launch = LiveLaunch(target_only_snapshot, cfg)
        launch.launch((0.0, 0.0))
        launch.run()
        assert len(launch.trail) == 5
        assert launch.trail[-1] == launch.trajectory[-1]

    def test_striker_kick(self, default_registry):
        cfg = make_config()
        launch = LiveLaunch(default_registry.snapshot(), cfg)
        striker = Striker(x=690.0, y=750.0, smooth_factor=0.5)
        striker.follow(710.0, 750.0)
        assert striker.x == 700.0
        assert striker.vx == 10.0

        assert launch.try_kick(striker)
        assert launch.is_moving
        angle, speed = launch.kick
        assert angle == pytest.approx(0.0)
        assert speed == pytest.approx(10.0)

    def test_striker_out_of_reach(self, default_registry):
        launch = LiveLaunch(default_registry.snapshot(), make_config())
        striker = Striker(x=100.0, y=100.0)
        striker.follow(120.0, 100.0)
        assert not launch.try_kick(striker)
        assert not launch.is_moving


# ============================================================
# 6. Launch Environment
# ============================================================

SCENARIO_ATTRACTORS = [
    {"id": "target", "x": 700.0, "y": 100.0, "radius": 50.0, "is_target": True},
]


class TestLaunchEnv:

    def test_spaces(self):
        env = LaunchEnv()
        assert env.observation_space.shape == (8,)
        assert env.action_space.shape == (2,)
        env.close()

    def test_reset(self):
        env = LaunchEnv()
        obs, info = env.reset(seed=0)
        assert obs.shape == (8,)
        assert obs.dtype == np.float32
        assert info["attractors"] == 6
        env.close()

    def test_action_mapping(self):
        env = LaunchEnv()
        vx, vy = env.action_to_velocity(np.array([-0.5, 1.0]))
        assert vx == pytest.approx(0.0, abs=1e-9)
        assert vy == pytest.approx(-15.0)
        vx, vy = env.action_to_velocity(np.array([-1.0, -1.0]))
        assert (vx, vy) == pytest.approx((1.0, 0.0))
        env.close()

    def test_episode_hits_target(self):
        env = LaunchEnv(arena_config={"launch_y": 800.0}, attractors=SCENARIO_ATTRACTORS)
        env.reset(seed=0)
        action = np.array([-0.5, 1.0], dtype=np.float32)

        terminated = truncated = False
        reward = 0.0
        info = {}
        while not (terminated or truncated):
            _, reward, terminated, truncated, info = env.step(action)

        assert terminated
        assert reward == 1.0
        assert info["event"] == "target_hit"
        assert env.success_rate == 1.0
        env.close()

    def test_missing_target_refuses_reset(self):
        env = LaunchEnv(attractors=[{"id": "rock", "x": 100.0, "y": 100.0, "radius": 20.0}])
        with pytest.raises(ConfigurationError):
            env.reset(seed=0)
        env.close()
