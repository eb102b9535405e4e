"""Session configuration, loadable from YAML."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from particle_engine.integrator import DEFAULT_DT
from particle_engine.palettes import PALETTES
from particle_engine.shapes import SHAPES

logger = logging.getLogger("particle_engine.config")


@dataclass
class EngineConfig:
    particle_count: int = 3000
    dt: float = DEFAULT_DT
    fps: float = 60.0
    shape: str = "sphere"
    palette: str = "rainbow"
    seed: Optional[int] = None
    camera_enabled: bool = True
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.5
    host: str = "0.0.0.0"
    port: int = 8770
    frame_every: int = 1  # broadcast every n-th tick
    frame_precision: int = 3

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.particle_count <= 0:
            raise ValueError(f"particle_count must be positive, got {self.particle_count}")
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.shape not in SHAPES:
            raise ValueError(f"Unknown shape '{self.shape}'")
        if self.palette not in PALETTES:
            raise ValueError(f"Unknown palette '{self.palette}'")
        if self.frame_every < 1:
            raise ValueError(f"frame_every must be >= 1, got {self.frame_every}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load a config file. Top-level keys map to fields."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", path)
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
