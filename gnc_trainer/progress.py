"""Pass/fail history across runs.

`LevelProgress` is plain state: the caller loads it at session start,
records run results into it, and saves it at session end. The engine never
reads or writes it on its own.

Example:
    >>> from gnc_trainer.progress import LevelProgress
    >>>
    >>> progress = LevelProgress.load("~/.config/gnc-trainer/progress.json")
    >>> result = run_mission(get_level(0), control)
    >>> progress.record(0, result, source=controller_source)
    >>> progress.is_level_available(1)
    True
    >>> progress.save("~/.config/gnc-trainer/progress.json")
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from beartype import beartype
from loguru import logger

from gnc_trainer.simulation.simulator import MissionResult


@beartype
@dataclass
class LevelProgress:
    """Completed levels and the last controller source per level.

    Attributes:
        completed_levels: Sorted level numbers that have been passed
        max_level_reached: Highest level number passed
        controller_sources: Last controller source submitted per level
    """
    completed_levels: list[int] = field(default_factory=list)
    max_level_reached: int = 0
    controller_sources: dict[int, str] = field(default_factory=dict)

    def record(self, level: int, result: MissionResult, source: str | None = None) -> None:
        """Fold a run result into the history."""
        if source is not None:
            self.controller_sources[level] = source
        if result.success:
            self.mark_completed(level)

    def mark_completed(self, level: int) -> None:
        if level not in self.completed_levels:
            self.completed_levels.append(level)
            self.completed_levels.sort()
        self.max_level_reached = max(self.max_level_reached, level)

    def is_level_completed(self, level: int) -> bool:
        return level in self.completed_levels

    def is_level_available(self, level: int) -> bool:
        """Level 0 is always open; later levels need the previous one passed."""
        return level == 0 or (level - 1) in self.completed_levels

    def controller_source(self, level: int) -> str | None:
        return self.controller_sources.get(level)

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps({
            "completed_levels": self.completed_levels,
            "max_level_reached": self.max_level_reached,
            "controller_sources": {str(k): v for k, v in self.controller_sources.items()},
        }, indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "LevelProgress":
        """Deserialize from JSON."""
        data = json.loads(json_str)
        return cls(
            completed_levels=sorted(int(level) for level in data.get("completed_levels", [])),
            max_level_reached=int(data.get("max_level_reached", 0)),
            controller_sources={int(k): v for k, v in data.get("controller_sources", {}).items()},
        )

    @classmethod
    def load(cls, path: str | Path) -> "LevelProgress":
        """Load progress, or start fresh if the file does not exist."""
        path = Path(path).expanduser()
        if not path.exists():
            logger.debug(f"No progress file at {path}, starting fresh")
            return cls()
        return cls.from_json(path.read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> Path:
        """Write progress to disk, creating parent directories."""
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        logger.debug(f"Saved progress to {path}")
        return path
