import csv
import io
import re
from datetime import date as _date
from pathlib import Path

SUMMARY_HEADER = ["Wallet Address", "Token Count"]
DETAILED_HEADER = ["Wallet Address", "Token Count", "Token IDs"]


def summary_rows(holders):
    return [SUMMARY_HEADER] + [[h.address, str(h.token_count)] for h in holders]


def detailed_rows(holders):
    return [DETAILED_HEADER] + [
        [h.address, str(h.token_count), ", ".join(h.token_ids)] for h in holders
    ]


def render_csv(rows):
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerows(rows)
    return buf.getvalue()


def csv_filename(symbol, kind, day=None):
    day = day or _date.today()
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", symbol or "UNKNOWN").strip("_") or "UNKNOWN"
    return f"{safe}_holders_{kind}_{day.isoformat()}.csv"


def write_snapshot_csvs(result, out_dir, detailed=False, day=None):
    """Write the summary CSV (and the detailed one if asked); returns the paths written."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    outputs = [("summary", summary_rows)]
    if detailed:
        outputs.append(("detailed", detailed_rows))

    paths = []
    for kind, rows in outputs:
        path = out_dir / csv_filename(result.symbol, kind, day)
        path.write_text(render_csv(rows(result.holders)), encoding="utf-8")
        paths.append(path)
    return paths
