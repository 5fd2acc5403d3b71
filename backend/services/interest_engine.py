"""Interest accrual for borrowers and yield distribution for lenders.

Borrower debt grows by simple interest between touches; every touch folds
the interest into the stored principal, so compounding frequency equals call
frequency. Lender yield is tracked through a shared cumulative index scaled
by ``BASIS_POINTS``.
"""

import logging

from common.protocol_constants import BASIS_POINTS, SECONDS_PER_YEAR
from models.ledger_state import GlobalLedgerState
from models.positions import BorrowPosition, DepositPosition


logger = logging.getLogger(__name__)


class InterestEngine:
    """Stateless rate math bound to one annual rate and fixed-point scale."""

    def __init__(self, annual_interest_percent: int, rate_scale: int) -> None:
        if annual_interest_percent < 0:
            raise ValueError("annual_interest_percent must be >= 0")
        if rate_scale <= 0:
            raise ValueError("rate_scale must be > 0")
        self._annual_interest_percent = annual_interest_percent
        self._rate_scale = rate_scale

    @property
    def rate_per_second(self) -> int:
        """Per-second rate scaled by ``rate_scale``, floored before use."""
        return self._annual_interest_percent * self._rate_scale // (100 * SECONDS_PER_YEAR)

    def roll_global_index(self, state: GlobalLedgerState, now: int) -> int:
        """Advance the cumulative yield index to *now*.

        Returns:
            int: The index increment applied (0 when nothing changed).
        """
        if now <= state.last_interest_update or state.total_deposits == 0:
            return 0

        elapsed = now - state.last_interest_update
        interest_earned = (
            state.total_borrows * self._annual_interest_percent * elapsed // (100 * SECONDS_PER_YEAR)
        )
        yield_per_token = interest_earned * BASIS_POINTS // state.total_deposits

        state.cumulative_yield_index += yield_per_token
        state.last_interest_update = now
        if yield_per_token:
            logger.debug(
                "Yield index rolled elapsed=%s interest=%s increment=%s index=%s",
                elapsed,
                interest_earned,
                yield_per_token,
                state.cumulative_yield_index,
            )
        return yield_per_token

    @staticmethod
    def pending_yield(state: GlobalLedgerState, position: DepositPosition) -> int:
        """Yield owed to *position* since its last snapshot."""
        if state.cumulative_yield_index <= position.yield_index_snapshot:
            return 0
        delta = state.cumulative_yield_index - position.yield_index_snapshot
        return position.principal * delta // BASIS_POINTS

    def accrued_debt(self, position: BorrowPosition, now: int) -> int:
        """Debt of *position* at *now*; the stored principal if no time passed."""
        if position.principal <= 0 or now <= position.last_accrual:
            return position.principal
        elapsed = now - position.last_accrual
        factor = self._rate_scale + self.rate_per_second * elapsed
        return position.principal * factor // self._rate_scale
