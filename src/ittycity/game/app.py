from __future__ import annotations

import logging
import sys
import traceback

import gltf
from direct.showbase.ShowBase import ShowBase
from direct.task import Task
from panda3d.core import LVector3d, WindowProperties, loadPrcFileData

from ittycity.app_config import RunConfig
from ittycity.common.error_log import ErrorLog
from ittycity.game.coords import model_heading, to_panda
from ittycity.game.input_system import poll_mouse_look_delta, sample_input_state
from ittycity.game.remote_control import RemoteControlBridge
from ittycity.net.client import RemoteControlClient
from ittycity.physics.motion.intent import InputState
from ittycity.physics.simulation import make_context, step_frame
from ittycity.physics.spatial_query import SpatialQuery
from ittycity.physics.tuning import MovementTuning, apply_tuning_overrides
from ittycity.state import error_log_path, load_state, update_state
from ittycity.ui.overlay import CameraShake, EffectsOverlay, shake_params
from ittycity.world.atmosphere import Atmosphere
from ittycity.world.props import PropSpawner
from ittycity.world.scene import WorldScene

logger = logging.getLogger(__name__)


class GameApp(ShowBase):
    def __init__(self, cfg: RunConfig) -> None:
        loadPrcFileData("", "audio-library-name null")
        if cfg.smoke:
            loadPrcFileData("", "window-type offscreen")

        super().__init__()
        # .glb/.gltf support for map models.
        gltf.patch_loader(self.loader)

        self.cfg = cfg
        self.tuning = MovementTuning()
        self._loaded_state = load_state()
        applied = apply_tuning_overrides(self.tuning, self._loaded_state.tuning_overrides)
        if applied:
            logger.info("Applied persisted tuning: %s", ", ".join(applied))
        self.disableMouse()

        self._pointer_locked = not cfg.smoke
        self._last_mouse: tuple[float, float] | None = None
        self._mouse_dx_accum = 0.0
        self._mouse_dy_accum = 0.0
        self._zoom_accum = 0
        self._started_at: float | None = None

        self.error_log = ErrorLog(max_items=30, persist_path=error_log_path())

        self.ctx = make_context(tuning=self.tuning, first_person=cfg.first_person)
        self.player_node = self.render.attachNewNode("player-node")
        self._player_model = self.loader.loadModel("models/smiley")
        self._player_model.reparentTo(self.player_node)
        self._player_model.setScale(0.4)
        # Model origin is its centre; the player position is eye height.
        self._player_model.setZ(-float(self.tuning.body_height) + 0.4)
        if cfg.first_person:
            self.player_node.hide()

        self.atmosphere = Atmosphere(base=self, render=self.render)
        self.atmosphere.set_time(cfg.time_of_day)
        self.atmosphere.set_weather(cfg.weather)
        self.props = PropSpawner(loader=self.loader, render=self.render)
        self.overlay = EffectsOverlay(aspect2d=self.aspect2d)
        self.shake = CameraShake()

        self.client: RemoteControlClient | None = None
        self.remote: RemoteControlBridge | None = None
        if cfg.remote_host:
            self.client = RemoteControlClient(host=cfg.remote_host, port=cfg.remote_port)
            self.remote = RemoteControlBridge(
                client=self.client,
                ctx=self.ctx,
                world=self,
                update_interval=float(self.tuning.state_update_interval),
            )
            self.client.start()

        self._setup_window()
        self._setup_input()

        self.scene = WorldScene(body_height=float(self.tuning.body_height))
        self.scene.build(
            map_path=cfg.map_path,
            loader=self.loader,
            render=self.render,
            on_ready=lambda world, spawn: self._safe_call("scene.ready", lambda: self._on_world_ready(world, spawn)),
        )
        if cfg.map_path:
            update_state(last_map=str(cfg.map_path))

        self.taskMgr.add(self._update, "ittycity-update")
        if cfg.smoke:
            self.taskMgr.add(self._smoke_exit, "smoke-exit")

    def _setup_window(self) -> None:
        if self.cfg.smoke:
            return
        props = WindowProperties()
        props.setCursorHidden(self._pointer_locked)
        props.setMouseMode(WindowProperties.M_relative if self._pointer_locked else WindowProperties.M_absolute)
        props.setTitle("Itty City")
        self.win.requestProperties(props)
        self.camLens.setFov(75)
        self.camLens.setNearFar(0.05, 2000.0)

    def _setup_input(self) -> None:
        self.accept("escape", lambda: self._safe_call("input.escape", self._toggle_pointer_lock))
        self.accept("r", lambda: self._safe_call("input.respawn", self._respawn))
        self.accept("wheel_up", self._on_wheel, [1])
        self.accept("wheel_down", self._on_wheel, [-1])

    def _on_wheel(self, steps: int) -> None:
        self._zoom_accum += int(steps)

    def _toggle_pointer_lock(self) -> None:
        if self.cfg.smoke:
            return
        self._pointer_locked = not self._pointer_locked
        self._last_mouse = None
        props = WindowProperties()
        props.setCursorHidden(self._pointer_locked)
        props.setMouseMode(WindowProperties.M_relative if self._pointer_locked else WindowProperties.M_absolute)
        self.win.requestProperties(props)

    def _respawn(self) -> None:
        self.ctx.controller.respawn(self.ctx.player)
        self.ctx.rig.reset()

    def _on_world_ready(self, world: SpatialQuery, spawn: LVector3d) -> None:
        # Props spawned before the map finished loading still need to collide.
        for box in self.props.boxes:
            world.add_box(box)
        self.ctx.set_geometry(world)
        self.ctx.set_spawn(spawn)
        logger.info("World ready; spawn at (%.2f, %.2f, %.2f)", float(spawn.x), float(spawn.y), float(spawn.z))

    # Remote-control world handlers.

    def spawn_prop(self, kind: str, position: LVector3d) -> None:
        geometry = self.ctx.query if self.scene.ready else None
        self.props.spawn(kind, position, geometry=geometry)

    def show_message(self, text: str, *, duration_ms: float, now: float) -> None:
        self.overlay.show_message(text, duration_ms=duration_ms, now=now)

    def set_time(self, value: float) -> None:
        preset = self.atmosphere.set_time(value)
        logger.info("Time set to %.2f (%s)", float(value), preset.name)

    def set_weather(self, value: str) -> None:
        near, far = self.atmosphere.set_weather(value)
        logger.info("Weather set to %s (fog %.0f..%.0f)", self.atmosphere.weather, near, far)

    def play_effect(self, name: str, params: dict, *, now: float) -> None:
        if name == "shake":
            intensity, duration_ms = shake_params(params)
            self.shake.start(now=now, intensity=intensity, duration_ms=duration_ms)
        elif name == "flash":
            self.overlay.flash(now=now)
        else:
            logger.warning("Unknown effect %r", name)

    def _safe_call(self, context: str, fn) -> None:
        try:
            fn()
        except Exception as e:
            self._handle_unhandled_error(context=context, exc=e)

    def _handle_unhandled_error(self, *, context: str, exc: BaseException) -> None:
        # Never crash because of an update exception.
        try:
            self.error_log.log_exception(context=context, exc=exc)
        except Exception:
            try:
                print(f"[FATAL] error logger failed: {traceback.format_exc()}", file=sys.stderr)
            except Exception:
                pass

    def _smoke_input(self, now: float) -> InputState:
        # Walk forward, then jump once, so smoke runs exercise the whole step.
        t = 0.0 if self._started_at is None else now - self._started_at
        return InputState(forward=True, jump=1.0 <= t < 1.1)

    def _update(self, task: Task) -> int:
        try:
            dt = float(globalClock.getDt())
            now = float(globalClock.getFrameTime())
            if self._started_at is None:
                self._started_at = now

            if self.remote is not None:
                self.remote.apply_incoming(now=now)

            poll_mouse_look_delta(self)
            if self.cfg.smoke:
                intent = self._smoke_input(now)
            else:
                intent = sample_input_state(self, paused=not self._pointer_locked)

            result = step_frame(self.ctx, intent, dt)

            player = self.ctx.player
            self.player_node.setPos(to_panda(player.position))
            self.player_node.setH(model_heading(player.yaw))

            pose = result.camera
            self.camera.setPos(to_panda(pose.position + self.shake.offset(now)))
            self.camera.lookAt(to_panda(pose.target))

            self.overlay.tick(now=now)
            if self.remote is not None:
                self.remote.tick_updates(now=now)
            return Task.cont
        except Exception as e:
            self._handle_unhandled_error(context="update.loop", exc=e)
            return Task.cont

    def _smoke_exit(self, task: Task) -> int:
        if self._started_at is None:
            return Task.cont
        if float(globalClock.getFrameTime()) - self._started_at < float(self.cfg.smoke_seconds):
            return Task.cont
        p = self.ctx.player.position
        logger.info("Smoke run done at (%.2f, %.2f, %.2f), mode=%s", float(p.x), float(p.y), float(p.z), self.ctx.player.mode.value)
        self.shutdown_remote()
        self.userExit()
        return Task.done

    def shutdown_remote(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            self.remote = None


def run(cfg: RunConfig) -> None:
    app = GameApp(cfg)
    try:
        app.run()
    finally:
        app.shutdown_remote()
