"""Text report for terminal display."""

from __future__ import annotations

from datetime import timedelta

from autorip.model import Plan


def format_duration(duration: timedelta) -> str:
    """Format a duration as HH:MM:SS or MM:SS."""
    total_seconds = int(duration.total_seconds())
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def plan_report(plan: Plan) -> str:
    """Generate a plain text summary of a rip plan."""
    lines: list[str] = []
    disc = plan.disc_info

    lines.append("=" * 60)
    lines.append("Disc Summary")
    lines.append("=" * 60)
    lines.append(f"  Name:     {disc.name}")
    lines.append(f"  Volume:   {disc.volume_name}")
    lines.append(f"  Titles:   {len(disc.titles)}")
    lines.append("")

    lines.append("-" * 60)
    lines.append("Identity")
    lines.append("-" * 60)
    ident = plan.identity
    if ident is None:
        lines.append("  (not identified)")
    else:
        year = f" ({ident.start_year})" if ident.start_year else ""
        lines.append(f"  {ident.primary_title}{year}  [{ident.tconst}, {ident.title_type}]")
    lines.append("")

    lines.append("-" * 60)
    lines.append("Titles to rip")
    lines.append("-" * 60)
    if not plan.rip_titles:
        lines.append("  (none)")
    for score in plan.rip_titles:
        source = disc.titles[score.title_index].source_file_name
        lines.append(
            f"  #{score.title_index:<3} {format_duration(score.duration):>10}  "
            f"{score.type:<10} x{score.likelihood:<8.3g} {source}"
        )
    lines.append("")
    return "\n".join(lines)
