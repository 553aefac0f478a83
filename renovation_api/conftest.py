"""
Shared fixtures for the escrow and dispute test suites.

Users, a project with a matched bid, the bidding settings row, and escrows
in each of the states tests commonly start from.
"""
import pytest
from rest_framework.test import APIClient

from accounts.models import CustomUser
from escrow.services import EscrowService
from projects.models import Bid, BiddingSettings, Project


@pytest.fixture(autouse=True)
def escrow_test_settings(settings):
    settings.ESCROW_CURRENCY = 'VND'
    settings.ESCROW_MAX_RETRIES = 3


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def homeowner(db):
    return CustomUser.objects.create_user(
        email="homeowner@example.com",
        password="testpass123",
        first_name="Lan",
        last_name="Nguyen",
        user_type=CustomUser.HOMEOWNER,
    )


@pytest.fixture
def contractor(db):
    return CustomUser.objects.create_user(
        email="contractor@example.com",
        password="testpass123",
        first_name="Minh",
        last_name="Tran",
        user_type=CustomUser.CONTRACTOR,
    )


@pytest.fixture
def outsider(db):
    return CustomUser.objects.create_user(
        email="outsider@example.com",
        password="testpass123",
        user_type=CustomUser.HOMEOWNER,
    )


@pytest.fixture
def admin_user(db):
    return CustomUser.objects.create_superuser(
        email="admin@example.com",
        password="testpass123",
        first_name="Escrow",
        last_name="Admin",
    )


# =============================================================================
# Marketplace
# =============================================================================


@pytest.fixture
def bidding_settings(db):
    return BiddingSettings.objects.create(
        id=BiddingSettings.DEFAULT_ID,
        escrow_percentage=10,
        escrow_min_amount=1_000_000,
        escrow_max_amount=None,
    )


@pytest.fixture
def project(db, homeowner):
    return Project.objects.create(owner=homeowner, title="Kitchen remodel", status='matched')


@pytest.fixture
def bid(db, project, contractor):
    return Bid.objects.create(project=project, contractor=contractor, price=400_000_000, status='selected')


@pytest.fixture
def service():
    return EscrowService()


# =============================================================================
# Escrows
# =============================================================================


@pytest.fixture
def pending_escrow(db, bidding_settings, project, bid, homeowner, service):
    """400M bid at 10% -> 40M deposit awaiting confirmation."""
    return service.create_escrow(project=project, bid=bid, homeowner=homeowner, bid_price=bid.price)


@pytest.fixture
def held_escrow(pending_escrow, admin_user, service):
    return service.confirm_held(pending_escrow.pk, admin_user)


@pytest.fixture
def disputed_escrow(held_escrow, homeowner, service):
    return service.open_dispute(held_escrow.pk, "Tiles cracked after installation", homeowner)


# =============================================================================
# API clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client
