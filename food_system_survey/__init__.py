"""
Food System Survey Dashboard

Turns the food system stakeholder survey export into the data shapes behind the
dashboard charts, and geocodes organization headquarters for the map view.
"""

__version__ = "1.0.0"
__author__ = "Food Systems Roundtable Data Team"
