"""
doctorschedule - availability slot management for doctors.
"""

__version__ = "0.1.0"
