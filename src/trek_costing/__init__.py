"""
Trek Costing Package

Back-office pricing for trek bookings. Turns permit, service and extra
line items into section and quote totals, classifies payments, and
exports the resulting cost tables.
"""

__version__ = "1.0.0"
