"""Score engine: lazy decay and point accrual on a loaded Account row.

Callers hold the account lock and commit; these functions only mutate the
row in the session.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from vpe.db.models import Account
from vpe.ledger.service import check_amount
from vpe.score.decay import DEFAULT_DECAY_RATE, decayed_score
from vpe.seasons.day_utils import ensure_utc, whole_days_between

logger = structlog.get_logger()


def apply_decay(account: Account, now: datetime, rate: float = DEFAULT_DECAY_RATE) -> float:
    """Apply whole elapsed days of decay and return the current score.

    The anchor advances by exactly the days applied, so the fractional
    remainder carries over and decay stays a pure function of time no matter
    how often it is read. Zero whole days is a no-op.
    """
    now = ensure_utc(now)
    days = whole_days_between(account.last_score_update_at, now)
    if days == 0:
        return account.current_score

    before = account.current_score
    account.current_score = decayed_score(before, days, rate)
    account.last_score_update_at = account.last_score_update_at + timedelta(days=days)
    account.updated_at = now
    logger.debug("score_decayed", account=account.address, days=days, before=before, after=account.current_score)
    return account.current_score


def add_points(
    account: Account, amount: float, now: datetime, rate: float = DEFAULT_DECAY_RATE
) -> tuple[float, float]:
    """Decay, then add ``amount`` to current and lifetime score.

    Negative amounts are rejected before anything changes: decay is the only
    way current score goes down.
    """
    amount = check_amount("points", amount)
    apply_decay(account, now, rate)
    account.current_score += amount
    account.lifetime_score += amount
    account.updated_at = ensure_utc(now)
    return account.current_score, account.lifetime_score
