from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass
class MovementTuning:
    # Horizontal motion is resolved directly as displacement (no accumulated velocity).
    base_speed: float = 5.0
    run_multiplier: float = 2.0
    gravity: float = 20.0
    jump_impulse: float = 8.0
    # Frame time cap; avoids huge steps after a stalled frame.
    max_dt: float = 0.1

    # Body. `position` is the eye/reference point, feet are `position.y - body_height`.
    body_height: float = 1.7
    collision_radius: float = 0.4
    step_height: float = 0.5

    # Surface classification by normal.y.
    walkable_normal_y: float = 0.5
    wall_normal_y_max: float = 0.5

    # Ground probe: ray starts `ground_probe_lift` above the window top, reaches `ground_probe_depth` below it.
    ground_probe_lift: float = 0.05
    ground_probe_depth: float = 50.0

    # Wall probe: body-height fractions for the horizontal rays (feet, mid-body, head).
    wall_probe_fractions: tuple[float, ...] = (0.35, 0.65, 0.95)
    # Lowest wall ray never goes below step_height + this clearance.
    wall_probe_step_clearance: float = 0.05
    wall_probe_epsilon: float = 1e-6
    # Too-tall ledges: the edge ray runs this far under the ledge top.
    ledge_probe_drop: float = 0.02
    slide_max_planes: int = 3
    corner_probe_count: int = 8
    corner_push_passes: int = 3
    corner_push_skin: float = 1e-3

    # Safety net for holes in geometry.
    abyss_y: float = -50.0
    recovery_height: float = 20.0

    # Camera rig.
    mouse_sensitivity: float = 0.002
    camera_distance: float = 5.0
    camera_min_distance: float = 2.0
    camera_max_distance: float = 15.0
    camera_zoom_step: float = 0.5
    camera_pitch_min: float = -0.35
    camera_pitch_max: float = 1.2
    camera_smoothness: float = 10.0
    camera_target_offset_y: float = 0.3

    # Remote-control snapshot cadence (seconds).
    state_update_interval: float = 0.5


def tuning_field_names() -> list[str]:
    return [f.name for f in fields(MovementTuning)]


def apply_tuning_overrides(tuning: MovementTuning, overrides: dict[str, float | bool]) -> list[str]:
    """
    Copy persisted scalar overrides onto a tuning instance.

    Unknown keys and values whose type does not match the field are skipped.
    Returns the names of the fields that were applied.
    """

    applied: list[str] = []
    for f in fields(MovementTuning):
        if f.name not in overrides:
            continue
        value = overrides[f.name]
        current = getattr(tuning, f.name)
        if isinstance(current, bool) or isinstance(current, tuple):
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if isinstance(current, int):
            setattr(tuning, f.name, int(value))
        else:
            setattr(tuning, f.name, float(value))
        applied.append(f.name)
    return applied
