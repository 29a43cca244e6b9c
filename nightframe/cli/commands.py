import datetime
import json
import logging
import os
import sys
from pathlib import Path

from nightframe.config import CONFIG_ENV_VAR, load_config
from nightframe.errors import ComputationError, UpstreamFetchError, ValidationError
from nightframe.recommender import (
    EquipmentProfile,
    MountCapability,
    ObserverContext,
    Recommender,
)
from nightframe.recommender.formatters import format_text, result_to_dict
from nightframe.recommender.providers import CuratedCatalogProvider, OpenNgcProvider


def _json_envelope(command: str, ok: bool, data=None, error=None) -> dict:
    return {
        "ok": ok,
        "command": command,
        "timestamp_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "data": data,
        "error": error,
    }


def _init_logging(level: str | None) -> None:
    if not level:
        return
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }
    logging.basicConfig(level=level_map.get(level, logging.INFO))


def _config_path_from_args(args) -> Path | None:
    if args is None:
        return None
    path = getattr(args, "config", None)
    return Path(path) if path else None


def _parse_datetime_arg(value: str | None) -> datetime.datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def _handle_error(command: str, args, code: str, exc: Exception) -> int:
    if getattr(args, "json", False):
        details = None
        if isinstance(exc, ValidationError):
            details = [{"field": i.field, "message": i.message} for i in exc.issues]
        payload = _json_envelope(
            command=command,
            ok=False,
            data=None,
            error={"code": code, "message": str(exc), "details": details},
        )
        print(json.dumps(payload, indent=2))
    else:
        print(str(exc), file=sys.stderr)
        if isinstance(exc, ValidationError):
            for issue in exc.issues:
                print(f"  {issue.field}: {issue.message}", file=sys.stderr)
    return 2


def run_recommend(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    config = load_config(_config_path_from_args(args))
    try:
        when = _parse_datetime_arg(args.date) or datetime.datetime.now(datetime.timezone.utc)
        recommender = Recommender(config)
        request = recommender.default_request(
            ObserverContext(latitude_deg=args.lat, longitude_deg=args.lon, when_utc=when),
            EquipmentProfile(
                sensor_width_mm=args.sensor_w,
                sensor_height_mm=args.sensor_h,
                focal_mm=args.focal_mm,
                f_number=args.f_num,
                pixel_um=args.pixel_um,
            ),
        )
        if args.mount is not None:
            request.mount = MountCapability.parse(args.mount)
        if args.min_alt is not None:
            request.min_alt_deg = args.min_alt
        if args.max_mag is not None:
            request.max_mag = args.max_mag
        if args.limit is not None:
            request.limit = args.limit
        if args.openngc_max is not None:
            request.openngc_max = args.openngc_max
        result = recommender.recommend(request, offline=getattr(args, "offline", False))
    except ValidationError as e:
        return _handle_error("recommend", args, "invalid_parameters", e)
    except ComputationError as e:
        return _handle_error("recommend", args, "computation_error", e)
    except ValueError as e:
        return _handle_error("recommend", args, "invalid_parameters", e)

    if getattr(args, "json", False):
        payload = _json_envelope(command="recommend", ok=True, data=result_to_dict(result), error=None)
        print(json.dumps(payload, indent=2))
    else:
        print(format_text(result, verbose=getattr(args, "verbose", False)))
    return 0


def run_catalog(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    config = load_config(_config_path_from_args(args))
    provider = OpenNgcProvider(source=args.source or config.openngc_url, timeout_s=config.catalog_timeout_s)
    try:
        result = provider.fetch()
    except UpstreamFetchError as e:
        return _handle_error("catalog", args, "upstream_unavailable", e)

    reasons: dict[str, int] = {}
    for row in result.skipped:
        key = row.reason.split(" '")[0]
        reasons[key] = reasons.get(key, 0) + 1
    data = {
        "source": provider.source,
        "targets": len(result.targets),
        "skipped": len(result.skipped),
        "skipped_by_reason": reasons,
    }
    if getattr(args, "json", False):
        print(json.dumps(_json_envelope(command="catalog", ok=True, data=data, error=None), indent=2))
    else:
        print(f"Source: {data['source']}")
        print(f"Targets: {data['targets']}")
        print(f"Skipped rows: {data['skipped']}")
        for reason, count in sorted(reasons.items(), key=lambda kv: -kv[1]):
            print(f"  {reason:30} {count}")
    return 0


def run_doctor(args=None) -> int:
    _init_logging(getattr(args, "log_level", None))

    def check_config():
        try:
            load_config(_config_path_from_args(args))
            return {"ok": True, "detail": "loaded (defaults applied if missing)"}
        except (OSError, ValueError) as e:
            return {"ok": False, "detail": f"invalid config: {e}"}

    config_check = check_config()
    if not config_check["ok"]:
        checks = {"config": config_check}
    else:
        config = load_config(_config_path_from_args(args))

        def check_curated():
            try:
                count = len(CuratedCatalogProvider(catalog_path=config.curated_path).list_targets())
                return {"ok": True, "detail": f"{count} targets"}
            except (OSError, ValueError) as e:
                return {"ok": False, "detail": str(e)}

        def check_openngc():
            if not config.catalog_enabled:
                return {"ok": True, "detail": "disabled"}
            try:
                count = len(OpenNgcProvider(config.openngc_url, config.catalog_timeout_s).list_targets())
                return {"ok": True, "detail": f"reachable, {count} targets"}
            except UpstreamFetchError as e:
                return {"ok": False, "detail": str(e)}

        checks = {
            "config": config_check,
            "curated_catalog": check_curated(),
            "openngc": check_openngc(),
        }

    ok = all(c["ok"] for c in checks.values())

    if args is not None and getattr(args, "json", False):
        payload = _json_envelope(
            command="doctor",
            ok=ok,
            data={"checks": checks},
            error=None
            if ok
            else {
                "code": "doctor_failed",
                "message": "one or more checks failed",
                "details": None,
            },
        )
        print(json.dumps(payload, indent=2))
    else:
        print("Nightframe Doctor Report")
        print("========================")

        for name, result in checks.items():
            status = "OK" if result["ok"] else "MISSING"
            print(f"{name:20} : {status} ({result['detail']})")

        if ok:
            print("\nSystem ready.")
        else:
            print("\nSome components are missing or not configured.")

    return 0 if ok else 1


def run_serve(args) -> int:
    _init_logging(getattr(args, "log_level", None) or "info")
    import uvicorn

    config_path = _config_path_from_args(args)
    if config_path is not None:
        os.environ[CONFIG_ENV_VAR] = str(config_path)
    config = load_config(config_path)
    uvicorn.run(
        "nightframe.api.app:create_app",
        factory=True,
        host=args.host or config.server_host,
        port=args.port or config.server_port,
    )
    return 0
