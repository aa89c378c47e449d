import os
from flask import Flask, request, jsonify
import gspread
import pandas as pd
from gspread_dataframe import get_as_dataframe, set_with_dataframe

from scheduling import Accepted, SchedulingContext
from scheduling.diagnostics import conflict_report, conflicts_to_df
from scheduling.persistence import TABLES, restore, snapshot
from scheduling.records import placement_rows_from_df

app = Flask(__name__)


def _credentials_file(data=None) -> str:
    data = data or {}
    return data.get(
        "service_account_file",
        os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "service_account.json"),
    )


def _open_spreadsheet(spreadsheet_id: str, cred_file: str):
    gc = gspread.service_account(filename=cred_file)
    return gc.open_by_key(spreadsheet_id)


def _load_sheet(sh, title):
    try:
        return sh.worksheet(title)
    except gspread.exceptions.WorksheetNotFound:
        return sh.add_worksheet(title=title, rows=1, cols=1)


def _read_sheet(sh, title) -> pd.DataFrame:
    try:
        ws = sh.worksheet(title)
    except gspread.exceptions.WorksheetNotFound:
        return pd.DataFrame()
    return get_as_dataframe(ws, evaluate_formulas=True, header=0).dropna(how="all").fillna("")


def _write_sheet(sh, title, df: pd.DataFrame) -> None:
    ws = _load_sheet(sh, title)
    ws.clear()
    set_with_dataframe(ws, df)


def save_to_spreadsheet(sh, snap) -> None:
    """Replace-all: every table worksheet is cleared and rewritten."""
    for title in TABLES:
        _write_sheet(sh, title, snap.get(title, pd.DataFrame()))


def load_from_spreadsheet(sh):
    return {title: _read_sheet(sh, title) for title in TABLES}


def open_board(spreadsheet_id: str, cred_file: str, log_func=print):
    """Open the spreadsheet and rebuild a context from it."""
    sh = _open_spreadsheet(spreadsheet_id, cred_file)
    ctx = SchedulingContext(log_func=log_func)
    errors = restore(ctx, load_from_spreadsheet(sh))
    return sh, ctx, errors


def _bad_request(message):
    return jsonify({"error": message}), 400


@app.route("/validate", methods=["POST"])
def validate_from_sheet():
    data = request.get_json(force=True)
    try:
        spreadsheet_id = data["spreadsheet_id"]
        event_id = str(data["event_id"])
        course_id = str(data["course_id"])
    except KeyError as exc:
        return _bad_request(f"missing field {exc}")
    room = data.get("room")
    start_day = data.get("start_day")

    try:
        room = None if room is None else int(room)
        start_day = None if start_day is None else int(start_day)
    except (TypeError, ValueError):
        return _bad_request("room and start_day must be integers")

    _, ctx, _ = open_board(spreadsheet_id, _credentials_file(data), log_func=app.logger.info)
    try:
        outcome = ctx.validate(event_id, course_id, room, start_day, draft=bool(data.get("draft", False)))
    except ValueError as exc:
        return _bad_request(str(exc))

    if isinstance(outcome, Accepted):
        return jsonify({
            "accepted": True,
            "start_day": outcome.start_day,
            "days": list(outcome.days),
            "clamped": outcome.clamped,
        })
    return jsonify({
        "accepted": False,
        "reason": outcome.reason.value,
        "message": outcome.message,
        "conflicting_days": list(outcome.conflicting_days),
        "conflicting_course_ids": list(outcome.conflicting_course_ids),
    })


@app.route("/import-schedule", methods=["POST"])
def import_schedule_from_sheet():
    data = request.get_json(force=True)
    spreadsheet_id = data.get("spreadsheet_id")
    if not spreadsheet_id:
        return _bad_request("missing field 'spreadsheet_id'")
    source_sheet = data.get("source_sheet", "schedule_import")
    conflicts_sheet = data.get("conflicts_sheet", "conflicts")

    sh, ctx, load_errors = open_board(spreadsheet_id, _credentials_file(data), log_func=app.logger.info)

    source_df = _read_sheet(sh, source_sheet)
    if source_df.empty:
        return _bad_request(f"sheet '{source_sheet}' is missing or empty")
    try:
        rows, row_errors = placement_rows_from_df(source_df)
    except ValueError as exc:
        return _bad_request(str(exc))
    result = ctx.import_placement_rows(rows, replace_all=bool(data.get("replace", True)))

    save_to_spreadsheet(sh, snapshot(ctx))
    conflicts = conflict_report(ctx)
    _write_sheet(sh, conflicts_sheet, conflicts_to_df(conflicts))

    return jsonify({
        "imported_rows": result.success_count,
        "errors": row_errors + result.errors,
        "load_errors": load_errors,
        "conflicts": len(conflicts),
        "stats": ctx.stats(),
    })


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
