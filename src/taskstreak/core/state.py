# src/taskstreak/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.lifecycle import TaskLifecycleController


@dataclass
class AppState:
    # Settings live on the state for easy access from command handlers.
    settings: Any

    controller: TaskLifecycleController
    user_id: str

    # task_id -> last suggestion shown to the user (for /accept)
    pending_suggestions: dict[str, str] = field(default_factory=dict)
    # task ids in the order of the last listing, so commands can take "#2"
    last_listing: list[str] = field(default_factory=list)
