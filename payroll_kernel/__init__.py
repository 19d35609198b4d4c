"""
Payroll Kernel

Shared foundation for the factory payroll computation engine:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Immutable domain records (attendance, work logs, loans, rates)
- Pay-period value object used by every engine
"""

__version__ = "0.1.0"
