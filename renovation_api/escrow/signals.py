from django.dispatch import Signal

# Sent after commit whenever custodial funds should move. The payment
# collaborator listens for it; the escrow ledger never moves money itself.
# Keyword arguments: escrow, movement ('release' or 'refund'), amount.
funds_movement_requested = Signal()

RELEASE = 'release'
REFUND = 'refund'
