"""Command-line interface."""

from enum import Enum
from pathlib import Path
from typing import Optional
import logging

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="pathweight: trajectory mutual information of reaction networks")
console = Console()


class Algorithm(str, Enum):
    """Marginal density estimator."""

    SMC = "smc"
    DIRECTMC = "directmc"


@app.command()
def version():
    """Show pathweight version."""
    from pathweight import __version__
    console.print(f"pathweight version {__version__}")


@app.command("mutual-information")
def mutual_information_cmd(
    algorithm: Algorithm = typer.Option(Algorithm.SMC, help="Marginal density estimator"),
    samples: int = typer.Option(128, min=1, help="Particles (SMC) or paths (Direct MC)"),
    responses: int = typer.Option(1, min=1, help="Number of independent configurations"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
    mean_s: float = typer.Option(50.0, help="Mean signal copy number"),
    duration: float = typer.Option(2.0, min=0.0, help="Length of the trajectories"),
    step: float = typer.Option(0.1, help="Spacing of the checkpoint grid (positive)"),
    output: Optional[Path] = typer.Option(None, help="Write arrays to this .npz file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """Estimate the mutual information of the gene expression preset."""
    from pathweight.estimators import DirectMCEstimate, SMCEstimate
    from pathweight.example_systems import gene_expression_system
    from pathweight.information import (
        MutualInformationSettings,
        mean_mutual_information,
        mutual_information,
        save_mutual_information,
    )

    if step <= 0:
        raise typer.BadParameter(f"must be positive, got {step}", param_hint="--step")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = MutualInformationSettings(num_responses=responses, seed=seed)
    dtimes = np.round(np.arange(0.0, duration + step / 2, step), 10)
    system = gene_expression_system(mean_s=mean_s, dtimes=dtimes)
    if algorithm is Algorithm.SMC:
        estimator = SMCEstimate(num_particles=samples)
    else:
        estimator = DirectMCEstimate(num_samples=samples)

    rng = np.random.default_rng(settings.seed)
    result = mutual_information(system, estimator, settings.num_responses, rng)
    mi = mean_mutual_information(result)

    table = Table(title=f"Mutual information ({estimator.name}, {settings.num_responses} responses)")
    table.add_column("t", style="cyan")
    table.add_column("MI (nats)", style="green")
    for t, value in zip(dtimes, mi):
        table.add_row(f"{t:.2f}", f"{value:.4f}")
    console.print(table)

    if output is not None:
        path = save_mutual_information(output, result, dtimes)
        console.print(f"[green]Saved results to {path}[/green]")


if __name__ == "__main__":
    app()
