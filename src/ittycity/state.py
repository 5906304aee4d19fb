from __future__ import annotations

import json
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class IttyState:
    last_map: str | None = None
    first_person: bool | None = None
    tuning_overrides: dict[str, float] = field(default_factory=dict)


def state_dir() -> Path:
    """
    Directory for small persistent user state.

    Override for tests/dev via `ITTYCITY_STATE_DIR`.
    """

    override = os.environ.get("ITTYCITY_STATE_DIR")
    if override:
        return Path(override)
    return Path.home() / ".ittycity"


def state_path() -> Path:
    return state_dir() / "state.json"


def error_log_path() -> Path:
    return state_dir() / "errors.log"


def load_state() -> IttyState:
    p = state_path()
    if not p.exists():
        return IttyState()
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return IttyState()

    if not isinstance(payload, dict):
        return IttyState()
    lm = payload.get("last_map")
    fp = payload.get("first_person")
    raw_tuning = payload.get("tuning_overrides")
    tuning_overrides: dict[str, float] = {}
    if isinstance(raw_tuning, dict):
        for key, value in raw_tuning.items():
            if not isinstance(key, str) or not key.strip():
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            tuning_overrides[key] = float(value)
    return IttyState(
        last_map=str(lm) if isinstance(lm, str) and lm.strip() else None,
        first_person=bool(fp) if isinstance(fp, bool) else None,
        tuning_overrides=tuning_overrides,
    )


def save_state(state: IttyState) -> None:
    d = state_dir()
    d.mkdir(parents=True, exist_ok=True)
    p = state_path()
    # Unique tmp name so parallel runs never clobber each other's partial writes.
    tmp = p.with_name(f"{p.name}.{os.getpid()}.{secrets.token_hex(6)}.tmp")
    tmp.write_text(
        json.dumps(
            {
                "last_map": state.last_map,
                "first_person": state.first_person,
                "tuning_overrides": state.tuning_overrides,
            },
            indent=2,
            sort_keys=True,
        )
        + "\n",
        encoding="utf-8",
    )
    tmp.replace(p)


def update_state(
    *,
    last_map: str | None = None,
    first_person: bool | None = None,
    tuning_overrides: dict[str, float] | None = None,
) -> None:
    s = load_state()
    merged_tuning = dict(s.tuning_overrides)
    if tuning_overrides is not None:
        merged_tuning.update(tuning_overrides)
    save_state(
        IttyState(
            last_map=last_map if last_map is not None else s.last_map,
            first_person=first_person if first_person is not None else s.first_person,
            tuning_overrides=merged_tuning,
        )
    )
