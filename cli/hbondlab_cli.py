"""Command line interface for hbondlab."""
from __future__ import annotations

import argparse
import sys

from hbondlab.analysis import HbondAnalysisEngine, load_project_json, load_universe
from hbondlab.classifier import classify_sites
from hbondlab.errors import ConfigurationError, SetupError
from hbondlab.export import export_results
from hbondlab.logging_utils import setup_run_logger
from hbondlab.models import (
    AnalysisOptions,
    HbondConfig,
    InputConfig,
    OutputConfig,
    ProjectConfig,
)
from hbondlab.topology import TopologyView


def _progress(current: int, total: int, message: str) -> None:
    percent = int(100 * current / max(total, 1))
    sys.stdout.write(f"\r[{percent:3d}%] {message}")
    sys.stdout.flush()
    if current >= total:
        sys.stdout.write("\n")


def _hbond_from_args(args: argparse.Namespace) -> HbondConfig:
    cfg = HbondConfig(
        name=args.name,
        selection=args.mask,
        donor_mask=args.donormask,
        acceptor_mask=args.acceptormask,
        solvent_donor=args.solventdonor,
        solvent_acceptor=args.solventacceptor,
        distance=args.dist,
        angle=args.angle,
        series=args.series,
        out=args.out,
        avgout=args.avgout,
        solvout=args.solvout,
        bridgeout=args.bridgeout,
        series_out=args.series_out,
    )
    cfg.validate()
    return cfg


def _apply_frame_overrides(project: ProjectConfig, args: argparse.Namespace) -> None:
    if args.output:
        project.outputs.output_dir = args.output
    if args.stride is not None:
        if args.stride <= 0:
            raise ConfigurationError("Frame stride must be positive")
        project.analysis.stride = args.stride
    if args.start is not None:
        project.analysis.frame_start = args.start
    if args.stop is not None:
        project.analysis.frame_stop = args.stop
    if args.plot:
        project.outputs.write_plots = True


def _execute(project: ProjectConfig, args: argparse.Namespace) -> int:
    logger, log_path = setup_run_logger(project.outputs.output_dir)
    logger.info("CLI analysis requested")
    engine = HbondAnalysisEngine(project)
    result = engine.run(progress=_progress if args.progress else None, logger=logger)
    written = export_results(result, project)
    print(f"Log written to {log_path}")
    for name, hbond_result in result.hbond_results.items():
        print(f"Hbond {name}: {hbond_result.n_frames} frames, {len(hbond_result.solute)} solute hbonds")
        for key, path in sorted({**hbond_result.reports, **written.get(name, {})}.items()):
            print(f"  {key}: {path}")
    if result.warnings:
        print("Analysis warnings:")
        for warning in result.warnings[:10]:
            print(f"  - {warning}")
    return 0 if result.hbond_results else 1


def run_command(args: argparse.Namespace) -> int:
    project = load_project_json(args.project)
    _apply_frame_overrides(project, args)
    return _execute(project, args)


def hbond_command(args: argparse.Namespace) -> int:
    project = ProjectConfig(
        inputs=InputConfig(topology=args.topology, trajectory=args.trajectory),
        analysis=AnalysisOptions(),
        outputs=OutputConfig(output_dir=args.output or "results"),
        hbonds=[_hbond_from_args(args)],
    )
    args.output = None
    _apply_frame_overrides(project, args)
    return _execute(project, args)


def sites_command(args: argparse.Namespace) -> int:
    cfg = _hbond_from_args(args)
    universe = load_universe(InputConfig(topology=args.topology))
    topology = TopologyView(universe)
    print(f"HBOND: {cfg.describe()}")
    try:
        sites = classify_sites(topology, cfg)
    except SetupError as exc:
        print(f"Warning: {exc}")
        return 1
    for line in sites.describe(topology):
        print(line)
    return 0


def _add_hbond_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--topology", required=True, help="Topology file")
    parser.add_argument("--name", default="hbond", help="Analysis name")
    parser.add_argument("--mask", default="all", help="Region searched for donors/acceptors")
    parser.add_argument("--donormask", help="Explicit donor selection")
    parser.add_argument("--acceptormask", help="Explicit acceptor selection")
    parser.add_argument("--solventdonor", help="Solvent donor selection")
    parser.add_argument("--solventacceptor", help="Solvent acceptor selection")
    parser.add_argument("--dist", type=float, default=3.0, help="Distance cutoff (A)")
    parser.add_argument("--angle", type=float, default=135.0, help="Angle cutoff (degrees)")
    parser.add_argument("--series", action="store_true", help="Keep a 0/1 series per hbond")
    parser.add_argument("--out", help="Per-frame hbond counts (CSV)")
    parser.add_argument("--avgout", help="Solute-solute average report")
    parser.add_argument("--solvout", help="Solute-solvent average report")
    parser.add_argument("--bridgeout", help="Solvent bridging report")
    parser.add_argument("--series-out", dest="series_out", help="Per-hbond series (CSV)")


def _add_frame_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", help="Output directory")
    parser.add_argument("--stride", type=int, help="Frame stride")
    parser.add_argument("--start", type=int, help="Start frame index")
    parser.add_argument("--stop", type=int, help="Stop frame index (exclusive)")
    parser.add_argument("--progress", action="store_true", help="Show progress bar")
    parser.add_argument("--plot", action="store_true", help="Plot per-frame hbond counts")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="hbondlab CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the hbond analyses of a project file")
    run_parser.add_argument("--project", required=True, help="Project JSON/YAML file")
    _add_frame_arguments(run_parser)
    run_parser.set_defaults(func=run_command)

    hbond_parser = subparsers.add_parser("hbond", help="Run one hbond analysis from options")
    _add_hbond_arguments(hbond_parser)
    hbond_parser.add_argument("--trajectory", help="Trajectory file")
    _add_frame_arguments(hbond_parser)
    hbond_parser.set_defaults(func=hbond_command)

    sites_parser = subparsers.add_parser("sites", help="List detected donors and acceptors")
    _add_hbond_arguments(sites_parser)
    sites_parser.set_defaults(func=sites_command)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
