"""JSON export for decoded events, discs and rip plans."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from autorip.model import CatalogTitle, DiscInfo, Plan, RobotEvent


def disc_to_dict(disc: DiscInfo) -> dict:
    """Convert a DiscInfo to a JSON-serializable dict, omitting empty attributes."""
    titles = []
    for index, title in enumerate(disc.titles):
        titles.append(
            {
                "index": index,
                **title.reported(),
                "streams": [s.reported() for s in title.streams],
            }
        )
    return {**disc.reported(), "titles": titles}


def event_to_dict(event: RobotEvent) -> dict:
    """Convert a RobotEvent to a dict keyed by kind."""
    parsed = event.parsed
    if isinstance(parsed, DiscInfo):
        return {"kind": "disc", "disc": disc_to_dict(parsed)}
    return {
        "kind": type(parsed).__name__,
        "tag": event.tag,
        "raw": event.raw,
        "data": asdict(parsed),
    }


def _identity_dict(identity: CatalogTitle | None) -> dict | None:
    if identity is None:
        return None
    d = asdict(identity)
    d["genres"] = list(identity.genres)
    return d


def plan_to_dict(plan: Plan) -> dict:
    rip_titles = []
    for score in plan.rip_titles:
        title = plan.disc_info.titles[score.title_index]
        rip_titles.append(
            {
                "index": score.title_index,
                "duration_s": score.duration.total_seconds(),
                "type": score.type,
                "likelihood": score.likelihood,
                "source_file_name": title.source_file_name,
            }
        )
    return {
        "schema_version": "autorip.plan.v1",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "identity": _identity_dict(plan.identity),
        "disc": {
            "name": plan.disc_info.name,
            "volume_name": plan.disc_info.volume_name,
            "title_count": len(plan.disc_info.titles),
        },
        "rip_titles": rip_titles,
    }


def export_json(data: dict | list, path: str | Path | None = None, pretty: bool = True) -> str:
    """Serialize *data* to JSON. If path given, write to file. Always returns JSON string."""
    indent = 2 if pretty else None
    # default=str covers infinite likelihoods and anything else json refuses.
    text = json.dumps(data, indent=indent, default=str)
    if path is not None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    return text
