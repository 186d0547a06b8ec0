"""CLI entry point for training, evaluating and querying tabular models."""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..ml.recipes import RECIPES, get_recipe, run_recipe
from ..ml.report import cluster_table, format_prediction, print_metrics
from ..ml.session import PipelineSession
from ..ml.trainers import TaskKind
from .error_mapper import map_exception
from .logging import configure_logging

logger = structlog.get_logger(__name__)
console = Console()


def _default_model_path(session: PipelineSession, recipe_name: str) -> Path:
    return Path(session.settings.pipeline.models_dir) / f"{recipe_name}.joblib"


def _print_predictions(model, rows) -> None:
    for row in rows:
        console.print(escape(format_prediction(model.predict(row))))


def cmd_train(args) -> int:
    recipe = get_recipe(args.recipe)
    session = PipelineSession(seed=args.seed)
    run = run_recipe(recipe, session, data_path=args.data, test_path=args.test_data)

    model_path = Path(args.model) if args.model else _default_model_path(session, recipe.name)
    session.save_model(run.model, model_path)

    console.print(
        f"[bold]{recipe.name}[/bold]: trained on {run.train_rows} rows, "
        f"evaluated on {run.test_rows} rows"
    )
    print_metrics(run.metrics, console=console)
    if recipe.task == TaskKind.CLUSTERING:
        console.print(cluster_table(run.model.predictor.cluster_summary()))
    _print_predictions(run.model, recipe.samples)
    console.print(f"Model saved to {model_path}")
    return 0


def cmd_evaluate(args) -> int:
    recipe = get_recipe(args.recipe)
    session = PipelineSession()
    model, _ = session.load_model(args.model)
    data_dir = session.settings.pipeline.data_dir
    path = args.data or recipe.test_path(data_dir) or recipe.data_path(data_dir)
    dataset = recipe.load(session, path)
    metrics = session.evaluate(model, dataset, label_column=recipe.label_column)
    print_metrics(metrics, console=console)
    return 0


def cmd_predict(args) -> int:
    session = PipelineSession()
    model, _ = session.load_model(args.model)
    recipe = get_recipe(args.recipe) if args.recipe else None

    if args.row:
        rows = [json.loads(raw) for raw in args.row]
        if recipe is not None:
            rows = [recipe.row_model(**row) for row in rows]
    elif recipe is not None:
        rows = list(recipe.samples)
    else:
        raise ValueError("Nothing to predict: pass --row JSON or --recipe NAME")

    _print_predictions(model, rows)
    return 0


def cmd_recipes(args) -> int:
    table = Table(box=box.SIMPLE, title="Recipes")
    table.add_column("Name", style="cyan")
    table.add_column("Task")
    table.add_column("Data")
    table.add_column("Description")
    for name in sorted(RECIPES):
        recipe = RECIPES[name]
        files = recipe.train_file + (f", {recipe.test_file}" if recipe.test_file else "")
        table.add_row(name, recipe.task.value, files, recipe.description)
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabml", description="tabml - tabular learning pipelines"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Train, evaluate and save a recipe model")
    train.add_argument("--recipe", required=True, choices=sorted(RECIPES))
    train.add_argument("--data", help="Training data file")
    train.add_argument("--test-data", help="Evaluation data file")
    train.add_argument("--model", help="Where to save the model")
    train.add_argument("--seed", type=int, default=None, help="Random seed")
    train.set_defaults(handler=cmd_train)

    evaluate = sub.add_parser("evaluate", help="Evaluate a saved model")
    evaluate.add_argument("--recipe", required=True, choices=sorted(RECIPES))
    evaluate.add_argument("--model", required=True)
    evaluate.add_argument("--data", help="Evaluation data file")
    evaluate.set_defaults(handler=cmd_evaluate)

    predict = sub.add_parser("predict", help="Predict rows with a saved model")
    predict.add_argument("--model", required=True)
    predict.add_argument("--recipe", choices=sorted(RECIPES))
    predict.add_argument(
        "--row", action="append", default=[], help="Row as a JSON object"
    )
    predict.set_defaults(handler=cmd_predict)

    recipes = sub.add_parser("recipes", help="List available recipes")
    recipes.set_defaults(handler=cmd_recipes)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    try:
        return args.handler(args)
    except Exception as e:
        mapping = map_exception(e)
        logger.error(
            "Command failed",
            command=args.command,
            code=mapping.code,
            error=str(e),
            exc_info=mapping.code == "internal_error",
        )
        console.print(f"[red]Error ({mapping.code}):[/red] {escape(mapping.message)}")
        if mapping.hint:
            console.print(f"[dim]{escape(mapping.hint)}[/dim]")
        return mapping.exit_code


if __name__ == "__main__":
    sys.exit(main())
