"""
Maintenance jobs for ChoreQuest.

Run through the Flask CLI (see app.register_commands):
- points_audit: Audit child balances against the ledger
- streak_sweep: Reset streaks of missed assignments
"""

from chorequest.jobs.points_audit import audit_points_balances
from chorequest.jobs.streak_sweep import sweep_missed_streaks

__all__ = [
    'audit_points_balances',
    'sweep_missed_streaks'
]
