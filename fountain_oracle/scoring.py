"""Daily entitlement formulas"""
import logging
import math

from fountain_oracle.config import OracleParameters

logger = logging.getLogger(__name__)

# Decimal places kept in the carried cumulative score
SCORE_PRECISION = 10


class EntitlementScorer:
    """Calculates growth, booster and entitlement values for a snapshot day"""

    def __init__(self, params: OracleParameters):
        self.params = params

    def compute_growth_rate(self, active_holders: int, previous_holders: int) -> float:
        """Growth rate gt = (Nt - Nt-1) / Nt-1, zero without a previous count"""
        if previous_holders == 0:
            return 0.0
        growth_rate = (active_holders - previous_holders) / previous_holders
        logger.info(f"Growth rate: {active_holders} vs {previous_holders} = {growth_rate * 100:.2f}%")
        return growth_rate

    def update_cumulative_score(self, growth_rate: float, cumulative_score: float) -> float:
        """Ratchet C up on qualifying growth, optionally decay it on quiet days"""
        new_score = cumulative_score
        if growth_rate >= self.params.growth_threshold:
            new_score = round(cumulative_score + self.params.growth_increment, SCORE_PRECISION)
            logger.info(f"Growth threshold met ({growth_rate * 100:.2f}%), C += {self.params.growth_increment}")
        elif self.params.enable_decay:
            new_score = max(0.0, round(cumulative_score - self.params.decay_amount, SCORE_PRECISION))
            logger.info(f"Decay applied, C -= {self.params.decay_amount}")

        logger.info(f"Cumulative score: {cumulative_score} -> {new_score}")
        return new_score

    def compute_growth_multiplier(self, cumulative_score: float) -> float:
        """Growth multiplier Mt = min(1 + C, cap)"""
        if not self.params.enable_growth_multiplier:
            return 1.0
        return min(1 + cumulative_score, self.params.max_growth_multiplier)

    def compute_donor_booster(self, new_donors: int, active_holders: int) -> int:
        """Donor booster Bt, non-zero only when new donors outnumber holders"""
        if not self.params.enable_donor_booster:
            return 0
        if active_holders == 0 or new_donors <= active_holders:
            return 0

        # floor(k * (Dt/Nt - 1)) in integers, exact for any ratio
        booster = min(
            self.params.booster_multiplier * (new_donors - active_holders) // active_holders,
            self.params.max_donor_booster
        )
        logger.info(f"Donor booster: {new_donors}/{active_holders} -> {booster}")
        return booster

    def compute_final_entitlement(self, donor_booster: int, growth_multiplier: float) -> int:
        """Final entitlement Et = floor((base + Bt) * Mt), capped"""
        entitlement = math.floor((self.params.base_daily_amount + donor_booster) * growth_multiplier)
        final_entitlement = min(entitlement, self.params.max_daily_entitlement)
        logger.info(f"Final entitlement: {entitlement} (capped: {final_entitlement})")
        return final_entitlement
