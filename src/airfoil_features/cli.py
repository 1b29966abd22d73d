"""Command line interface for the feature engine.

Commands:
    stats      Descriptive statistics of the dataset features
    transform  Derive a transformed feature and show its statistics
    pca        Run PCA over features and report explained variance
    export     Write the wide feature view (CSV or Parquet) and the snapshot

Every command seeds a store from the dataset file and, with --snapshot,
replays a previously saved snapshot on top of it before doing its work.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from airfoil_features.config.engine import EngineConfig, load_engine_config, validate_engine_config
from airfoil_features.dataset import load_dataset
from airfoil_features.dimensionality import PCAOutput, component_loadings, summarize_pca
from airfoil_features.ndjson_logger import setup_ndjson_logger
from airfoil_features.paths import REPO_ROOT
from airfoil_features.storage import FeatureStore
from airfoil_features.transforms import (
    TransformKind,
    TransformParams,
    get_known_inverse,
    validate_custom_transform,
)

console = Console()


def _load_config(path: Path | None) -> EngineConfig:
    if path is not None:
        return load_engine_config(path)
    try:
        return load_engine_config()
    except FileNotFoundError:
        logger.debug("No config/engine.toml found, using defaults")
        return EngineConfig()


def _setup_logging(config: EngineConfig, log_dir: Path | None) -> None:
    log_cfg = config.logging
    if log_dir is None:
        log_dir = Path(log_cfg.log_dir)
        if not log_dir.is_absolute():
            log_dir = REPO_ROOT / log_dir
    setup_ndjson_logger(
        log_cfg.component,
        log_dir=log_dir,
        level=log_cfg.level,
        rotation=log_cfg.rotation,
        retention=log_cfg.retention,
        console_level=log_cfg.console_level or None,
    )


def _build_store(args: argparse.Namespace, config: EngineConfig) -> FeatureStore:
    store = FeatureStore(config)
    store.initialize_from_data(load_dataset(args.data, config))
    if args.snapshot is not None and not store.load_config(args.snapshot):
        msg = f"Could not import snapshot {args.snapshot}"
        raise ValueError(msg)
    return store


def _print_stats(store: FeatureStore, feature_ids: list[str] | None = None) -> None:
    df = store.stats_table(feature_ids)
    table = Table(title="Feature statistics")
    table.add_column("id", style="cyan", no_wrap=True, overflow="fold")
    table.add_column("type")
    for col in ("count", "min", "median", "max", "mean", "std"):
        table.add_column(col, justify="right")

    for row in df.iter_rows(named=True):
        table.add_row(
            row["id"],
            row["type"],
            str(row["count"]),
            *(f"{row[c]:.6g}" for c in ("min", "median", "max", "mean", "std")),
        )
    console.print(table)


def _print_diagnostics(store: FeatureStore) -> None:
    for diag in store.diagnostics:
        console.print(f"[yellow]{diag.code.value}[/yellow]: {escape(diag.message)}")


def _save_snapshot(store: FeatureStore, output: Path | None) -> None:
    if output is not None:
        path = store.save_config(output)
        console.print(f"Snapshot written to [bold]{path}[/bold]")


def cmd_stats(args: argparse.Namespace, config: EngineConfig) -> int:
    store = _build_store(args, config)
    _print_stats(store, args.features or None)
    _print_diagnostics(store)
    return 0


def cmd_transform(args: argparse.Namespace, config: EngineConfig) -> int:
    store = _build_store(args, config)

    params = None
    if args.kind == TransformKind.CUSTOM.value:
        error = validate_custom_transform(args.expression or "")
        if error is not None:
            console.print(f"[red]{escape(error)}[/red]")
            return 1
        inverse = args.inverse or get_known_inverse(args.expression)
        if inverse is not None and args.inverse is None:
            console.print(f"Using known inverse: {inverse}")
        params = TransformParams(expression=args.expression, inverse_expression=inverse)

    feature_id = store.add_transformed_feature(args.source, args.kind, params, args.name)
    _print_diagnostics(store)
    if feature_id is None:
        return 1

    console.print(f"Created feature [bold]{feature_id}[/bold]")
    _print_stats(store, [args.source, feature_id])
    _save_snapshot(store, args.output)
    return 0


def cmd_pca(args: argparse.Namespace, config: EngineConfig) -> int:
    store = _build_store(args, config)
    feature_ids = args.features or store.selected_feature_ids

    result = store.run_pca(feature_ids, args.components, args.name)
    if result is None:
        _print_diagnostics(store)
        return 1

    table = Table(title=f"{result.name} ({result.id})")
    table.add_column("component")
    table.add_column("variance", justify="right")
    table.add_column("ratio", justify="right")
    table.add_column("cumulative", justify="right")
    table.add_column("top loadings")
    for i in range(result.num_components):
        top = component_loadings(result.components, i, result.source_feature_ids).head(3)
        table.add_row(
            f"PC{i + 1}",
            f"{result.explained_variance[i]:.6g}",
            f"{result.explained_variance_ratio[i]:.1%}",
            f"{result.cumulative_variance_ratio[i]:.1%}",
            ", ".join(f"{r['feature']}={r['loading']:+.3f}" for r in top.iter_rows(named=True)),
        )
    console.print(table)

    summary = summarize_pca(
        PCAOutput(
            components=result.components,
            explained_variance=result.explained_variance,
            explained_variance_ratio=result.explained_variance_ratio,
            cumulative_variance_ratio=result.cumulative_variance_ratio,
            projections=result.projections,
            mean=result.mean,
            singular_values=result.singular_values,
            feature_names=result.source_feature_names,
        ),
        max_loadings=config.pca.max_loadings_reported,
    )
    console.print(summary["interpretation"])

    if args.save_components:
        created = store.save_pca_components(result.id, args.save_components)
        for fid in created:
            console.print(f"Saved component feature [bold]{fid}[/bold]")

    _print_diagnostics(store)
    _save_snapshot(store, args.output)
    return 0


def cmd_export(args: argparse.Namespace, config: EngineConfig) -> int:
    store = _build_store(args, config)
    wide = store.to_wide(args.features or None, include_target=not args.no_target)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix == ".parquet":
        wide.write_parquet(output)
    else:
        wide.write_csv(output)
    console.print(f"Wrote {wide.height} rows x {wide.width} columns to [bold]{output}[/bold]")

    _save_snapshot(store, args.snapshot_output)
    _print_diagnostics(store)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airfoil-features",
        description="Feature engineering and PCA for the airfoil self-noise dataset",
    )
    parser.add_argument("--config", "-c", type=Path, help="Engine config file (default: config/engine.toml)")
    parser.add_argument("--data", "-d", type=Path, help="Dataset file (default: from config)")
    parser.add_argument("--snapshot", "-s", type=Path, help="Snapshot JSON to replay before the command")
    parser.add_argument("--log-dir", type=Path, help="Directory for NDJSON logs")

    sub = parser.add_subparsers(dest="command", required=True)

    p_stats = sub.add_parser("stats", help="Show feature statistics")
    p_stats.add_argument("features", nargs="*", help="Feature ids (default: all)")
    p_stats.set_defaults(func=cmd_stats)

    p_transform = sub.add_parser("transform", help="Derive a transformed feature")
    p_transform.add_argument("source", help="Source feature id")
    p_transform.add_argument(
        "kind",
        choices=[k.value for k in TransformKind if k is not TransformKind.NONE],
        help="Transform kind",
    )
    p_transform.add_argument("--expression", "-e", help="Forward expression (custom only)")
    p_transform.add_argument("--inverse", "-i", help="Inverse expression (custom only)")
    p_transform.add_argument("--name", "-n", help="Display name")
    p_transform.add_argument("--output", "-o", type=Path, help="Write the resulting snapshot here")
    p_transform.set_defaults(func=cmd_transform)

    p_pca = sub.add_parser("pca", help="Run PCA over features")
    p_pca.add_argument("features", nargs="*", help="Feature ids (default: current selection)")
    p_pca.add_argument("--components", "-k", type=int, help="Number of components")
    p_pca.add_argument("--name", "-n", help="Display name")
    p_pca.add_argument(
        "--save-components",
        type=int,
        nargs="+",
        metavar="INDEX",
        help="0-based components to materialize as features",
    )
    p_pca.add_argument("--output", "-o", type=Path, help="Write the resulting snapshot here")
    p_pca.set_defaults(func=cmd_pca)

    p_export = sub.add_parser("export", help="Write the wide feature view")
    p_export.add_argument("output", type=Path, help="Output file (.csv or .parquet)")
    p_export.add_argument("features", nargs="*", help="Feature ids (default: current selection)")
    p_export.add_argument("--no-target", action="store_true", help="Leave out the target column")
    p_export.add_argument("--snapshot-output", type=Path, help="Also write the snapshot JSON here")
    p_export.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args.config)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1

    is_valid, errors = validate_engine_config(config)
    if not is_valid:
        for err in errors:
            console.print(f"[red]Config error:[/red] {escape(err)}")
        return 1

    _setup_logging(config, args.log_dir)

    try:
        return args.func(args, config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
