"""Export stored submissions to CSV or JSON."""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

# Output directory for generated export files
OUTPUT_DIR = Path("./outputs")

SUBMISSION_COLUMNS = [
    "id",
    "projectId",
    "projectName",
    "userName",
    "userEmail",
    "userId",
    "submittedAt",
]


def _lookup(data: Any, path: str) -> Any:
    """Resolve a dotted path such as ``metadata.gps.lat`` against nested dicts."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _cell(value: Any, flatten_objects: bool) -> Any:
    if flatten_objects and isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def submission_rows(submissions: List[Dict[str, Any]], flatten_objects: bool = True) -> List[Dict[str, Any]]:
    """One row per submission."""
    rows = []
    for submission in submissions:
        row = {column: submission.get(column) for column in SUBMISSION_COLUMNS}
        files = submission.get("files") or []
        row["fileCount"] = len(files)
        row["files"] = _cell(files, flatten_objects)
        rows.append(row)
    return rows


def file_rows(submissions: List[Dict[str, Any]], flatten_objects: bool = True) -> List[Dict[str, Any]]:
    """One row per file across all submissions."""
    rows = []
    for submission in submissions:
        for file_entry in submission.get("files") or []:
            row = {column: submission.get(column) for column in SUBMISSION_COLUMNS}
            row.update({
                "filename": _lookup(file_entry, "filename"),
                "type": _lookup(file_entry, "type"),
                "size": _lookup(file_entry, "size"),
                "kind": _lookup(file_entry, "metadata.kind"),
                "timestamp": _lookup(file_entry, "metadata.timestamp"),
                "lat": _lookup(file_entry, "metadata.gps.lat"),
                "lng": _lookup(file_entry, "metadata.gps.lng"),
                "width": _lookup(file_entry, "metadata.resolution.width"),
                "height": _lookup(file_entry, "metadata.resolution.height"),
                "orientation": _lookup(file_entry, "metadata.orientationLabel"),
                "hardPass": _lookup(file_entry, "validation.hardPass"),
                "softFailures": _cell(_lookup(file_entry, "validation.softFailures"), flatten_objects),
                "metadata": _cell(_lookup(file_entry, "metadata"), flatten_objects),
            })
            rows.append(row)
    return rows


def build_export_frame(
    submissions: List[Dict[str, Any]],
    row_type: str = "submissions",
    flatten_objects: bool = True
) -> pd.DataFrame:
    if row_type == "files":
        rows = file_rows(submissions, flatten_objects)
    elif row_type == "submissions":
        rows = submission_rows(submissions, flatten_objects)
    else:
        raise ValueError(f"Unsupported row type: {row_type}. Use 'submissions' or 'files'.")
    return pd.DataFrame(rows)


def generate_export_filename(project_id: Optional[str], row_type: str, fmt: str) -> str:
    """e.g. ``export_proj-1_files_20250122.csv``"""
    date = datetime.now().strftime("%Y%m%d")
    safe_id = "".join(c if c.isalnum() or c in ('-', '_') else '_' for c in (project_id or "all"))
    return f"export_{safe_id}_{row_type}_{date}.{fmt}"


def export_submissions(
    submissions: List[Dict[str, Any]],
    output_path: Optional[Path] = None,
    fmt: str = "csv",
    row_type: str = "submissions",
    project_id: Optional[str] = None,
    flatten_objects: bool = True
) -> Path:
    """
    Write submissions to a CSV (UTF-8 with BOM, for Excel) or JSON file.

    Returns the path written.
    """
    if fmt not in ("csv", "json"):
        raise ValueError(f"Unsupported export format: {fmt}. Use 'csv' or 'json'.")

    if output_path is None:
        OUTPUT_DIR.mkdir(exist_ok=True)
        output_path = OUTPUT_DIR / generate_export_filename(project_id, row_type, fmt)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    frame = build_export_frame(submissions, row_type, flatten_objects=flatten_objects or fmt == "csv")
    if fmt == "csv":
        frame.to_csv(output_path, index=False, encoding='utf-8-sig')
    else:
        frame.to_json(output_path, orient="records", indent=2, force_ascii=False)

    logger.info(f"Exported {len(frame)} {row_type} row(s) to: {output_path}")
    return output_path
