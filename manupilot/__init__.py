"""
ManuPilot Sourcing API

Sourcing core of the ManuPilot manufacturing platform: RFQ supplier
matching, supplier quote normalization, readiness and feasibility
scoring, sample QC checklists, notifications and NDA acceptance.
"""

__version__ = "1.0.0"
