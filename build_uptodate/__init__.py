"""
Build Up-To-Date Checker — decide whether build outputs are still fresh.
"""

__version__ = "0.1.0"
