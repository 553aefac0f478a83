from dataclasses import dataclass
from typing import Optional

from projects.models import BiddingSettings
from .exceptions import SettingsNotFound


@dataclass(frozen=True)
class EscrowPolicy:
    percentage: int
    min_amount: int
    max_amount: Optional[int] = None


class BiddingSettingsProvider:
    """Reads the escrow deposit policy from the ``default`` BiddingSettings row."""

    def get_escrow_policy(self) -> EscrowPolicy:
        row = BiddingSettings.objects.filter(pk=BiddingSettings.DEFAULT_ID).first()
        if row is None:
            raise SettingsNotFound()

        return EscrowPolicy(
            percentage=row.escrow_percentage,
            min_amount=row.escrow_min_amount,
            max_amount=row.escrow_max_amount or None,
        )
