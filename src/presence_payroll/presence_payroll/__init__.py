"""Staff presence & payroll package.

Organized by feature modules (geofence, attendance, approvals, payroll,
reconciliation, ledger) with a thin Flask controller layer over service and
repository layers.
"""
