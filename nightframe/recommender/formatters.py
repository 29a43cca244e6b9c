import json
import datetime

from .types import RecommendationResult, ScoredTarget


def _iso_utc(dt: datetime.datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def target_to_dict(entry: ScoredTarget) -> dict:
    target = entry.target
    capture = entry.suggested_capture
    suggested = {
        "sub_exposure_s": capture.sub_exposure_s,
        "gain": capture.gain,
        "subs": capture.subs,
        "notes": capture.notes,
    }
    if capture.npf_limit_s is not None:
        suggested["npf_limit_s"] = capture.npf_limit_s
    if capture.pixel_scale_arcsec is not None:
        suggested["pixel_scale_arcsec"] = capture.pixel_scale_arcsec
    payload = {
        "id": target.id,
        "name": target.name,
        "type": target.type,
        "ra_hms": target.ra_hms,
        "dec_dms": target.dec_dms,
        "fill_ratio": entry.fill_ratio,
        "framing_score": entry.framing_score,
        "visibility_score": entry.visibility_score,
        "visible_hours": entry.visible_hours,
        "score": entry.score,
        "suggested_capture": suggested,
    }
    if target.image_url:
        payload["image_url"] = target.image_url
    if target.description:
        payload["description"] = target.description
    if entry.window is not None:
        payload["window"] = {
            "start_utc": _iso_utc(entry.window.start_utc),
            "end_utc": _iso_utc(entry.window.end_utc),
            "alt_max_deg": entry.window.alt_max_deg,
        }
    return payload


def result_to_dict(result: RecommendationResult) -> dict:
    night = None
    if result.night is not None:
        night = {
            "start_utc": _iso_utc(result.night.start_utc),
            "end_utc": _iso_utc(result.night.end_utc),
            "source": result.night.source,
        }
    moon = None
    if result.moon is not None:
        moon = {
            "illumination": result.moon.illumination,
            "altitude_deg": result.moon.altitude_deg,
        }
    metrics = result.metrics
    return {
        "setup": result.setup,
        "night": night,
        "moon": moon,
        "recommended_targets": [target_to_dict(t) for t in result.targets],
        "metrics": {
            "source_count": metrics.source_count,
            "visible_count": metrics.visible_count,
            "compute_ms": metrics.compute_ms,
            "dynamic_count": metrics.dynamic_count,
            "dynamic_status": metrics.dynamic_status,
            "skipped_rows": metrics.skipped_rows,
        },
        "filtered_out_examples": [target_to_dict(t) for t in result.filtered_out_examples],
        "message": result.message,
    }


def format_json(result: RecommendationResult) -> str:
    return json.dumps(result_to_dict(result), indent=2)


def format_text(result: RecommendationResult, verbose: bool = False) -> str:
    lines: list[str] = []
    setup = result.setup
    lines.append("Nightframe Recommendations")
    lines.append("==========================")
    lines.append(f"Location: lat {setup['lat']:.3f}°, lon {setup['lon']:.3f}° ({setup['hemisphere']})")
    fov = setup.get("fov_deg") or {}
    if fov:
        lines.append(f"Field of view: {fov['width']:.2f}° x {fov['height']:.2f}° at {setup['focalMm']:g} mm")
    if result.night is not None:
        lines.append(
            f"Night (UTC): {_format_time(result.night.start_utc)} → {_format_time(result.night.end_utc)}"
            f" ({result.night.source}, {result.night.hours:.1f} h)"
        )
    if result.moon is not None:
        lines.append(f"Moon: {result.moon.illumination * 100:.0f}% lit, alt {result.moon.altitude_deg:.0f}°")
    if result.message:
        lines.append("")
        lines.append(result.message)
        return "\n".join(lines)

    lines.append("")
    rows = []
    for idx, entry in enumerate(result.targets, start=1):
        window = entry.window
        rows.append(
            {
                "idx": f"{idx:>3}.",
                "name": entry.target.name,
                "type": entry.target.type,
                "score": f"{entry.score:.3f}",
                "window": f"{_format_time(window.start_utc)}-{_format_time(window.end_utc)}" if window else "",
                "alt": f"{window.alt_max_deg:.0f}°" if window else "",
                "fill": f"{entry.fill_ratio:.2f}",
                "sub": f"{entry.suggested_capture.sub_exposure_s:g}s x{entry.suggested_capture.subs}",
            }
        )
    if not rows:
        return "\n".join(lines)

    name_w = min(36, max(len(r["name"]) for r in rows))
    type_w = min(18, max(len(r["type"]) for r in rows))
    for r in rows:
        name = _pad(_truncate(r["name"], name_w), name_w)
        ttype = _pad(_truncate(r["type"], type_w), type_w)
        line = f"{r['idx']} {name}  {ttype}  {r['score']}  {r['window']}  alt {r['alt']}"
        if verbose:
            line = f"{line}  fill {r['fill']}  {r['sub']}"
        lines.append(line)
    metrics = result.metrics
    lines.append("")
    lines.append(
        f"{metrics.visible_count} of {metrics.source_count} targets visible"
        f" (catalog: {metrics.dynamic_status}, {metrics.compute_ms} ms)"
    )
    return "\n".join(lines)


def _format_time(dt: datetime.datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).strftime("%H:%M")


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width <= 3:
        return value[:width]
    return value[: width - 3] + "..."


def _pad(value: str, width: int) -> str:
    if len(value) >= width:
        return value
    return value + (" " * (width - len(value)))
