"""CLI entrypoint for the horsepower to MPG regressor."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mpg_regressor.cleaner import clean_records
from mpg_regressor.config import ensure_output_root, load_config
from mpg_regressor.exceptions import DataFileError, InvalidConfigError
from mpg_regressor.history import TrainingHistory
from mpg_regressor.model import AffineRegressor
from mpg_regressor.models import (
    HistoryEntry,
    ModelParameters,
    NormalizationBounds,
    PipelineFailure,
    PipelineResult,
    PredictionPoint,
)
from mpg_regressor.pipeline import run_pipeline
from mpg_regressor.predictor import predict

app = typer.Typer(help="Train and query a horsepower to MPG regression model.")
console = Console()


def _vprint(enabled: bool, message: str) -> None:
    """Print verbose progress messages."""
    if enabled:
        console.print(f"[cyan]verbose:[/cyan] {escape(message)}")


def load_records(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array of raw car records."""
    if not path.is_file():
        raise DataFileError(f"Data file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DataFileError(f"Data file is not valid JSON: {path} ({exc.msg})") from exc
    if not isinstance(payload, list):
        raise DataFileError("Data file must contain a top-level JSON array of records.")
    return [record for record in payload if isinstance(record, dict)]


@app.command("inspect-data")
def inspect_data_cmd(
    data: Annotated[Path, typer.Option(help="Path to JSON array of car records.")],
) -> None:
    """Report how many records survive cleaning and their ranges."""
    try:
        records = load_records(data)
    except DataFileError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc
    samples = clean_records(records)
    dropped = len(records) - len(samples)
    console.print(f"Records: {len(records)}  Usable: {len(samples)}  Dropped: {dropped}")
    if not samples:
        console.print("[yellow]No usable samples.[/yellow]")
        return
    horsepower = [sample.horsepower for sample in samples]
    mpg = [sample.mpg for sample in samples]
    console.print(f"Horsepower range: {min(horsepower):g} - {max(horsepower):g}")
    console.print(f"MPG range: {min(mpg):g} - {max(mpg):g}")


@app.command("train")
def train_cmd(
    data: Annotated[Path, typer.Option(help="Path to JSON array of car records.")],
    config: Annotated[Path | None, typer.Option(help="Optional YAML config path.")] = None,
    epochs: Annotated[int | None, typer.Option(help="Number of training epochs.")] = None,
    batch_size: Annotated[int | None, typer.Option(help="Samples per batch.")] = None,
    learning_rate: Annotated[
        float | None, typer.Option(help="Optimizer learning rate.")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed for init and shuffle.")] = None,
    output_root: Annotated[str | None, typer.Option(help="Root output directory.")] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose/--no-verbose", help="Enable detailed logs. Enabled by default."),
    ] = True,
) -> None:
    """Train the model and write run artifacts."""
    try:
        runtime_config = load_config(
            config_path=config,
            overrides={
                "epochs": epochs,
                "batch_size": batch_size,
                "learning_rate": learning_rate,
                "seed": seed,
                "output_root": output_root,
            },
        )
    except InvalidConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=4) from exc
    _vprint(
        verbose,
        f"Config: epochs={runtime_config.epochs} batch_size={runtime_config.batch_size} "
        f"learning_rate={runtime_config.learning_rate} seed={runtime_config.seed}",
    )

    try:
        records = load_records(data)
    except DataFileError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc
    _vprint(verbose, f"Loaded {len(records)} raw records from {data}.")

    def _on_epoch_end(entry: HistoryEntry) -> None:
        _vprint(
            verbose,
            f"epoch {entry.epoch}/{runtime_config.epochs} "
            f"loss={entry.loss:.6f} mse={entry.metric:.6f}",
        )

    outcome = run_pipeline(
        records,
        runtime_config,
        on_epoch_end=_on_epoch_end,
        progress_callback=lambda message: _vprint(verbose, message),
    )
    if isinstance(outcome, PipelineFailure):
        location = ""
        if outcome.epoch is not None:
            location = f" (epoch {outcome.epoch}, batch {outcome.batch})"
        console.print(
            f"[red]Training failed ({outcome.kind.value}){escape(location)}:[/red] "
            f"{escape(outcome.message)}"
        )
        raise typer.Exit(code=3)

    if verbose:
        console.print(_summary_table(AffineRegressor.from_parameters(outcome.parameters)))
    run_dir = _make_run_dir(ensure_output_root(runtime_config.output_root))
    write_run_artifacts(run_dir, outcome)
    final = outcome.history[-1]
    console.print(f"[green]Training complete.[/green] Final loss: {final.loss:.6f}")
    console.print(f"Artifacts: {run_dir}")


@app.command("predict")
def predict_cmd(
    run_dir: Annotated[Path, typer.Option(help="Run directory written by 'train'.")],
    points: Annotated[int, typer.Option(help="Number of grid points.")] = 100,
    limit: Annotated[int, typer.Option(help="Rows to display; 0 shows all.")] = 10,
) -> None:
    """Rebuild the prediction curve from saved parameters and bounds."""
    try:
        parameters = ModelParameters.model_validate_json(
            (run_dir / "parameters.json").read_text(encoding="utf-8")
        )
        bounds = NormalizationBounds.model_validate_json(
            (run_dir / "bounds.json").read_text(encoding="utf-8")
        )
    except (OSError, ValidationError) as exc:
        console.print(
            f"[red]Cannot load run artifacts from {escape(str(run_dir))}: "
            f"{escape(str(exc))}[/red]"
        )
        raise typer.Exit(code=2) from exc
    if points < 2:
        console.print("[red]points must be at least 2.[/red]")
        raise typer.Exit(code=2)

    curve = predict(AffineRegressor.from_parameters(parameters), bounds, points=points)
    shown = curve if limit <= 0 else _spread(curve, limit)
    table = Table(title=f"Predicted MPG ({len(curve)} points)")
    table.add_column("Horsepower", justify="right")
    table.add_column("MPG", justify="right")
    for point in shown:
        table.add_row(f"{point.x:.1f}", f"{point.y:.2f}")
    console.print(table)


def write_run_artifacts(run_dir: Path, result: PipelineResult) -> None:
    """Write parameters, bounds, history, curve and observations of a run."""
    run_dir.mkdir(parents=True, exist_ok=True)
    (run_dir / "parameters.json").write_text(
        result.parameters.model_dump_json(indent=2) + "\n", encoding="utf-8"
    )
    (run_dir / "bounds.json").write_text(
        result.bounds.model_dump_json(indent=2) + "\n", encoding="utf-8"
    )
    history = TrainingHistory.from_entries(result.history)
    history.write_json(run_dir / "history.json")
    history.write_csv(run_dir / "history.csv")
    _write_json(run_dir / "predictions.json", [point.model_dump() for point in result.curve])
    _write_json(
        run_dir / "observations.json",
        [{"x": sample.horsepower, "y": sample.mpg} for sample in result.samples],
    )


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _summary_table(model: AffineRegressor) -> Table:
    table = Table(title="Model Summary")
    table.add_column("Layer")
    table.add_column("Output shape")
    table.add_column("Params", justify="right")
    for layer in model.summary():
        shape = ", ".join("None" if dim is None else str(dim) for dim in layer.output_shape)
        table.add_row(layer.name, f"({shape})", str(layer.param_count))
    table.add_row("total", "", str(model.parameter_count))
    return table


def _spread(curve: list[PredictionPoint], limit: int) -> list[PredictionPoint]:
    if len(curve) <= limit:
        return curve
    if limit == 1:
        return [curve[0]]
    step = (len(curve) - 1) / (limit - 1)
    return [curve[round(idx * step)] for idx in range(limit)]


def _make_run_dir(root: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    run_dir = root / stamp
    suffix = 0
    while run_dir.exists():
        suffix += 1
        run_dir = root / f"{stamp}-{suffix}"
    run_dir.mkdir(parents=True, exist_ok=False)
    return run_dir


def main() -> None:
    """Script entrypoint."""
    app()


if __name__ == "__main__":
    main()
