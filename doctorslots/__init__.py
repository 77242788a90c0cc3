"""
doctorslots - appointment scheduling engine for doctors' working hours.
"""

__version__ = "0.1.0"
