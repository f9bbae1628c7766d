"""
POS System Backend

Point-of-sale API: JWT authentication with refresh-token rotation and
transactional order placement against live inventory.
"""

__version__ = "1.0.0"
