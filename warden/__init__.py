"""
Warden - Community Moderation Core
==================================

Case ledger, sanction scheduling and staff workflows (tickets, reports)
for Discord communities.
"""

__version__ = "1.0.0"
