"""ParticleEngine CLI.

Usage:
    particle-engine serve       — Start the WebSocket server
    particle-engine simulate    — Run a headless session and report convergence
    particle-engine benchmark   — Measure tick throughput
    particle-engine shapes      — List shapes and their extents
    particle-engine palettes    — List palettes
"""

from __future__ import annotations

import logging
import time
from typing import Optional

try:
    import typer
except ImportError:
    raise ImportError("typer is required for CLI. Install with: pip install typer")

app = typer.Typer(
    name="particle-engine",
    help="Gesture-driven particle choreography.",
    add_completion=False,
)


def _load_config(config_path: Optional[str], **overrides):
    from particle_engine.config import EngineConfig

    config = EngineConfig.from_yaml(config_path) if config_path else EngineConfig()
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    config.validate()
    return config


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    particles: Optional[int] = typer.Option(None, help="Particle count"),
    no_camera: bool = typer.Option(False, "--no-camera", help="Disable hand tracking"),
    log_level: str = typer.Option("info", help="Log level"),
):
    """Start the particle streaming server."""
    import uvicorn
    from particle_engine.server import app as fastapi_app, state

    logging.basicConfig(level=log_level.upper())
    cfg = _load_config(config, host=host, port=port, particle_count=particles)
    if no_camera:
        cfg.camera_enabled = False
    state.config = cfg

    typer.echo(f"Starting ParticleEngine on {cfg.host}:{cfg.port} ({cfg.particle_count} particles)")
    uvicorn.run(fastapi_app, host=cfg.host, port=cfg.port, log_level=log_level)


@app.command()
def simulate(
    ticks: int = typer.Option(300, help="Ticks to run"),
    shape: str = typer.Option("sphere", help="Shape to settle on"),
    palette: str = typer.Option("rainbow", help="Palette"),
    particles: int = typer.Option(3000, help="Particle count"),
    explode: bool = typer.Option(False, help="Trigger an explosion first"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
):
    """Run a headless session and report how far particles are from target."""
    from particle_engine.config import EngineConfig
    from particle_engine.session import Session

    try:
        cfg = EngineConfig(
            particle_count=particles, shape=shape, palette=palette, seed=seed, camera_enabled=False
        )
    except ValueError as e:
        typer.echo(f"Invalid options: {e}", err=True)
        raise typer.Exit(1)

    session = Session(cfg)
    if explode:
        session.trigger_explosion()

    checkpoints = sorted({max(1, ticks // 4), max(1, ticks // 2), ticks})
    done = 0
    for checkpoint in checkpoints:
        session.run_ticks(checkpoint - done)
        done = checkpoint
        dist = session.particles.distances_to(session.state.targets)
        typer.echo(
            f"tick {done:5d}  mean dist {dist.mean():.4f}  max {dist.max():.4f}  "
            f"explosion {session.state.explosion:.3f}"
        )

    status = session.status()
    typer.echo(f"Done: shape={status['shape']} palette={status['palette']} t={status['time']:.2f}s")


@app.command()
def benchmark(
    ticks: int = typer.Option(600, help="Number of ticks"),
    particles: int = typer.Option(3000, help="Particle count"),
):
    """Measure tick throughput with a per-stage breakdown."""
    from particle_engine.config import EngineConfig
    from particle_engine.session import Session

    session = Session(EngineConfig(particle_count=particles, camera_enabled=False, seed=0))
    typer.echo(f"Running {ticks} ticks with {particles} particles")

    t0 = time.perf_counter()
    session.run_ticks(ticks)
    elapsed = time.perf_counter() - t0

    per_tick_ms = elapsed / ticks * 1000
    typer.echo(f"\nAverage tick:  {per_tick_ms:.3f} ms")
    typer.echo(f"Throughput:    {ticks / elapsed:.0f} ticks/s")

    typer.echo("\nStage breakdown:")
    for name, stats in session.profiler.summary().items():
        typer.echo(f"   {name:12s} avg={stats['avg_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms")


@app.command()
def shapes(count: int = typer.Option(3000, help="Points per shape")):
    """List shapes with the bounding box of their target clouds."""
    import numpy as np
    from particle_engine.shapes import SHAPES, generate

    rng = np.random.default_rng(0)
    for i, name in enumerate(SHAPES, start=1):
        points = generate(name, count, rng)
        lo, hi = points.min(axis=0), points.max(axis=0)
        typer.echo(
            f"[{i}] {name:10s} x[{lo[0]:6.2f},{hi[0]:6.2f}] "
            f"y[{lo[1]:6.2f},{hi[1]:6.2f}] z[{lo[2]:6.2f},{hi[2]:6.2f}]"
        )


@app.command()
def palettes():
    """List palettes and their anchor colors."""
    from particle_engine.palettes import PALETTES

    for name, colors in PALETTES.items():
        typer.echo(f"{name:8s} " + " ".join(f"#{c:06x}" for c in colors))


def main():
    app()


if __name__ == "__main__":
    main()
