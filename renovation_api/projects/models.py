from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.contrib.auth import get_user_model

User = get_user_model()


class Project(models.Model):
    STATUS_CHOICES = (
        ('open', 'Open'),
        ('matched', 'Matched'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    )

    owner = models.ForeignKey(User, related_name='projects', on_delete=models.PROTECT)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.owner})"


class Bid(models.Model):
    PENDING = 'pending'
    SELECTED = 'selected'

    STATUS_CHOICES = (
        (PENDING, 'Pending'),
        (SELECTED, 'Selected'),
        ('rejected', 'Rejected'),
        ('withdrawn', 'Withdrawn'),
    )

    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='bids')
    contractor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='bids')
    price = models.PositiveBigIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    submitted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Bid {self.price} by {self.contractor} on {self.project.title}"


class BiddingSettings(models.Model):
    """
    Platform-wide bidding policy, stored as a single row with id 'default'.
    The escrow_* fields drive the deposit a homeowner must place on a matched bid.
    """
    DEFAULT_ID = 'default'

    id = models.CharField(max_length=20, primary_key=True, default=DEFAULT_ID, editable=False)
    escrow_percentage = models.PositiveSmallIntegerField(
        default=10,
        validators=[MinValueValidator(1), MaxValueValidator(100)],
        help_text="Share of the bid price held in escrow, in whole percent",
    )
    escrow_min_amount = models.PositiveBigIntegerField(
        default=1_000_000,
        validators=[MinValueValidator(1)],
        help_text="Lower bound for the escrow amount",
    )
    escrow_max_amount = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Optional upper bound for the escrow amount",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Bidding settings"
        verbose_name_plural = "Bidding settings"

    def __str__(self):
        return f"Bidding settings ({self.escrow_percentage}%, min {self.escrow_min_amount})"
