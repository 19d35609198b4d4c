"""
payroll_services -- orchestration over the payroll engines.

Usage:
    from payroll_services import PayrollService
"""

from payroll_services.payroll_service import EmployeeMonthRecords, PayrollService

__all__ = [
    "EmployeeMonthRecords",
    "PayrollService",
]
