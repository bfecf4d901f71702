"""
Trip Budget - Source Package

A cost-allocation engine for travel groups whose members join and
leave on different dates, share some costs and pay others alone,
and spend in more than one currency.

DESIGN PRINCIPLES:
1. The engine is pure: it reads a trip snapshot and returns derived values
2. Untrusted documents pass through migration before the engine sees them
3. Missing exchange rates fail loudly, never silently
4. Every flow step is auditable
"""

__version__ = "1.0.0"
__author__ = "Trip Budget Team"
