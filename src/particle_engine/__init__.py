"""ParticleEngine - Gesture-driven particle choreography."""

__version__ = "0.1.0"

from particle_engine.shapes import SHAPES, generate
from particle_engine.gestures import GestureLabel, GestureSample
from particle_engine.classifier import GestureClassifier, classify
from particle_engine.palettes import PALETTES, color_at, palette_colors
from particle_engine.particles import ParticleStore, RenderFrame
from particle_engine.state import AnimationState
from particle_engine.integrator import Integrator, SpringParams
from particle_engine.config import EngineConfig
from particle_engine.session import Session
from particle_engine.scheduler import TickScheduler
from particle_engine.profiler import TickProfiler
from particle_engine.metrics import MetricsCollector
