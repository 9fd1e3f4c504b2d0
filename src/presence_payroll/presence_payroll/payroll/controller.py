from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.datetime_utils import parse_iso_date
from ..common.web import current_actor, error_response, json_body, login_required, result_response
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def _send_export(result, *, mimetype: str, filename: str):
        if not result.success:
            return result_response(result)
        return send_file(io.BytesIO(result.data), mimetype=mimetype, download_name=filename, as_attachment=True)

    @app.route("/api/payroll/salary-structures/<int:staff_id>", methods=["PUT"], endpoint="api_upsert_salary_structure")
    @login_required
    def api_upsert_salary_structure(staff_id: int):
        data = json_body()
        result = container.payroll_service.upsert_salary_structure(
            current_actor(),
            staff_id,
            base_salary=data.get("base_salary"),
            housing_allowance=data.get("housing_allowance"),
            transport_allowance=data.get("transport_allowance"),
            tax_deduction=data.get("tax_deduction"),
            pension_deduction=data.get("pension_deduction"),
            bank_name=data.get("bank_name"),
            account_number=data.get("account_number"),
            account_name=data.get("account_name"),
        )
        return result_response(result)

    @app.route("/api/payroll/runs", methods=["POST"], endpoint="api_generate_run")
    @login_required
    def api_generate_run():
        data = json_body()
        result = container.payroll_service.generate_run(
            current_actor(),
            data.get("month"),
            data.get("year"),
            data.get("days_in_month"),
            data.get("daily_rate_divisor"),
        )
        return result_response(result, ok_status=201)

    @app.route("/api/payroll/runs", methods=["GET"], endpoint="api_list_runs")
    @login_required
    def api_list_runs():
        return result_response(container.payroll_service.list_runs(current_actor()))

    @app.route("/api/payroll/runs/<int:run_id>", methods=["GET"], endpoint="api_run_details")
    @login_required
    def api_run_details(run_id: int):
        return result_response(container.payroll_service.get_run_details(current_actor(), run_id))

    @app.route("/api/payroll/runs/<int:run_id>/finalize", methods=["POST"], endpoint="api_finalize_run")
    @login_required
    def api_finalize_run(run_id: int):
        return result_response(container.payroll_service.finalize_run(current_actor(), run_id))

    @app.route("/api/payroll/runs/<int:run_id>/reconciliation", methods=["GET"], endpoint="api_reconciliation")
    @login_required
    def api_reconciliation(run_id: int):
        return result_response(container.reconciliation_service.get_reconciliation_report(current_actor(), run_id))

    @app.route("/api/payroll/runs/<int:run_id>/ledger", methods=["GET"], endpoint="api_ledger")
    @login_required
    def api_ledger(run_id: int):
        return result_response(container.ledger_service.get_reconciled_ledger(current_actor(), run_id))

    @app.route("/api/payroll/runs/<int:run_id>/ledger.csv", methods=["GET"], endpoint="api_ledger_csv")
    @login_required
    def api_ledger_csv(run_id: int):
        result = container.ledger_service.export_csv(current_actor(), run_id)
        return _send_export(result, mimetype="text/csv", filename=f"ledger_run_{run_id}.csv")

    @app.route("/api/payroll/runs/<int:run_id>/ledger.xlsx", methods=["GET"], endpoint="api_ledger_xlsx")
    @login_required
    def api_ledger_xlsx(run_id: int):
        result = container.ledger_service.export_xlsx(current_actor(), run_id)
        return _send_export(
            result,
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"ledger_run_{run_id}.xlsx",
        )

    @app.route("/api/payroll/forensics", methods=["GET"], endpoint="api_forensic_summary")
    @login_required
    def api_forensic_summary():
        try:
            start = parse_iso_date(request.args.get("start", ""))
            end = parse_iso_date(request.args.get("end", ""))
        except ValueError:
            return error_response("start and end must be YYYY-MM-DD")
        return result_response(container.reconciliation_service.get_forensic_summary(current_actor(), start, end))
