# Overview: Flask API routes for reports and the audit log; parses input and returns JSON responses.

from io import BytesIO

from flask import Blueprint, request, jsonify, current_app, send_file

from ..decorators import require_admin, require_auth
from ..services import audit_service, export_service, report_service
from payables.time_utils import today
from .errors import json_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/reports/master.xlsx")
@require_auth
@require_admin
def master_report_route():
    """Workbook with every supplier, receivable, payment and custody balance."""
    try:
        report_date = today()
        sheets = report_service.master_report(report_date=report_date)
        content = export_service.sheets_to_xlsx(
            sheets,
            title="Master report",
            right_to_left=current_app.config.get("EXPORT_RIGHT_TO_LEFT", False),
        )
        return send_file(
            BytesIO(content),
            as_attachment=True,
            download_name=f"master-report-{report_date.isoformat()}.xlsx",
            mimetype=export_service.XLSX_MIMETYPE,
        )
    except Exception as e:
        return json_error(e, "export master report")


@reports_bp.get("/reports/master")
@require_auth
@require_admin
def master_report_json_route():
    """Same sheets as the workbook, as JSON."""
    try:
        sheets = report_service.master_report()
        return jsonify({"sheets": [s.to_dict() for s in sheets]})
    except Exception as e:
        return json_error(e, "build master report")


@reports_bp.get("/audit-logs")
@require_auth
@require_admin
def list_audit_logs_route():
    """
    Audit entries, newest first.

    Query parameters: entity_type, entity_id, action_type, limit, offset
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)

    try:
        rows, total = audit_service.list_entries(
            entity_type=request.args.get("entity_type"),
            entity_id=request.args.get("entity_id", type=int),
            action_type=request.args.get("action_type"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "items": [r.to_dict() for r in rows],
            "count": total,
            "limit": limit,
            "offset": offset,
        })
    except Exception as e:
        return json_error(e, "list audit logs")
