"""
Tests for the command-line interface.
"""

import numpy as np
from typer.testing import CliRunner

from pathweight import __version__
from pathweight.cli import app

runner = CliRunner()


class TestCLI:
    """Test the typer application."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_mutual_information(self, tmp_path):
        output = tmp_path / "mi.npz"
        result = runner.invoke(
            app,
            [
                "mutual-information",
                "--samples", "4",
                "--responses", "2",
                "--seed", "3",
                "--mean-s", "5",
                "--duration", "0.5",
                "--step", "0.25",
                "--output", str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        with np.load(output) as data:
            assert np.allclose(data["dtimes"], [0.0, 0.25, 0.5])
            assert data["mutual_information"].shape == (2, 3)
            assert data["marginal"].shape == (2, 3)

    def test_direct_mc(self):
        result = runner.invoke(
            app,
            ["mutual-information", "--algorithm", "directmc", "--samples", "3",
             "--seed", "1", "--mean-s", "5", "--duration", "0.5", "--step", "0.25"],
        )
        assert result.exit_code == 0, result.output
        assert "MI (nats)" in result.output

    def test_rejects_non_positive_step(self):
        for step in ["0", "-0.1"]:
            result = runner.invoke(
                app,
                ["mutual-information", "--samples", "2", "--duration", "0.5", "--step", step],
            )
            assert result.exit_code == 2
            assert isinstance(result.exception, SystemExit)

    def test_output_suffix_is_added(self, tmp_path):
        result = runner.invoke(
            app,
            ["mutual-information", "--samples", "2", "--seed", "1", "--mean-s", "5",
             "--duration", "0.5", "--step", "0.5", "--output", str(tmp_path / "mi")],
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "mi.npz").exists()
