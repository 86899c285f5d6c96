"""
visitplanner - appointment slot finding and route planning for mobile service work.
"""

__version__ = "0.1.0"
