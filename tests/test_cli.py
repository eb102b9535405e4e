"""Tests for the command-line interface."""

import pytest

typer_testing = pytest.importorskip("typer.testing")

from particle_engine.cli import app

runner = typer_testing.CliRunner()


class TestCLI:
    def test_shapes(self):
        result = runner.invoke(app, ["shapes", "--count", "100"])
        assert result.exit_code == 0
        assert "butterfly" in result.output
        assert "[1] heart" in result.output

    def test_palettes(self):
        result = runner.invoke(app, ["palettes"])
        assert result.exit_code == 0
        assert "#ff0000" in result.output

    def test_simulate(self):
        result = runner.invoke(app, [
            "simulate", "--ticks", "40", "--particles", "100", "--shape", "star", "--seed", "1",
        ])
        assert result.exit_code == 0
        assert "mean dist" in result.output
        assert "shape=star" in result.output

    def test_simulate_bad_shape(self):
        result = runner.invoke(app, ["simulate", "--shape", "cube"])
        assert result.exit_code == 1

    def test_benchmark(self):
        result = runner.invoke(app, ["benchmark", "--ticks", "10", "--particles", "50"])
        assert result.exit_code == 0
        assert "Average tick" in result.output
