"""
Dental Clinic Appointments

A FastAPI service for booking dental appointments: one practitioner's
calendar, one-hour slots, conflict checking and email notifications.
"""

__version__ = "1.0.0"
