"""
Scheduling Domain

Pure booking rules, free of HTTP concerns:
- Overlap detection (overlap.py)
- Business hours policy (business_hours.py)
- Appointment status transitions (status.py)
- Booking validation with next-slot suggestion (validator.py)
"""
