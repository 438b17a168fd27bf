"""
Unicorn trading simulator.

AI investor personas and human users trade virtual shares of the HM14
basket at live market prices with play money (MTK).
"""

__version__ = "1.0.0"
