"""
HoReCa back-office access-control core
"""

__version__ = "1.0.0"
