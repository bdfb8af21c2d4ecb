"""Output formatters (JSON and text)."""

from autorip.export.json_out import (
    disc_to_dict,
    event_to_dict,
    export_json,
    plan_to_dict,
)
from autorip.export.text_report import format_duration, plan_report
