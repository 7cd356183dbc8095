"""
Household Tracker - Source Package

The recurring financial event engine behind a personal household-finance
tracker (paychecks and deposits).

DESIGN PRINCIPLES:
1. Templates expand into occurrences; occurrences are never stored
2. Fail early, fail visibly
3. No silent corrections (a broken recurrence is reported, never dropped)
4. "Now" is an input, not a hidden global
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Tracker Team"
