import argparse
import sys

from nightframe import __version__
from nightframe.cli.commands import run_catalog, run_doctor, run_recommend, run_serve


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Logging level")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nightframe")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    rec = subparsers.add_parser("recommend", help="Recommend targets for tonight")
    _add_common(rec)
    rec.add_argument("--lat", type=float, required=True, help="Observer latitude (deg)")
    rec.add_argument("--lon", type=float, required=True, help="Observer longitude (deg, east positive)")
    rec.add_argument("--sensor-w", type=float, required=True, help="Sensor width (mm)")
    rec.add_argument("--sensor-h", type=float, required=True, help="Sensor height (mm)")
    rec.add_argument("--focal-mm", type=float, required=True, help="Focal length (mm)")
    rec.add_argument("--f-num", type=float, required=True, help="Focal ratio")
    rec.add_argument("--pixel-um", type=float, help="Pixel size (µm)")
    rec.add_argument("--mount", choices=["fixed", "tracker", "guided"], help="Mount capability")
    rec.add_argument("--date", help="Reference instant (ISO-8601, default now)")
    rec.add_argument("--min-alt", type=float, help="Minimum altitude (deg)")
    rec.add_argument("--max-mag", type=float, help="Faintest magnitude from the OpenNGC source")
    rec.add_argument("--limit", type=int, help="Maximum number of targets")
    rec.add_argument("--openngc-max", type=int, help="OpenNGC rows to scan")
    rec.add_argument("--offline", action="store_true", help="Use the curated catalog only")
    rec.add_argument("--verbose", action="store_true", help="Show framing and capture columns")

    cat = subparsers.add_parser("catalog", help="Fetch the OpenNGC source and report parse results")
    _add_common(cat)
    cat.add_argument("--source", help="URL or local path of an OpenNGC CSV")

    doctor = subparsers.add_parser("doctor", help="Run system diagnostics")
    _add_common(doctor)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--config", help="Path to config.toml")
    serve.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Logging level")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Nightframe {__version__}")
        return 0

    if args.command == "recommend":
        return run_recommend(args)

    if args.command == "catalog":
        return run_catalog(args)

    if args.command == "doctor":
        return run_doctor(args)

    if args.command == "serve":
        return run_serve(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
