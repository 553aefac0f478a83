import pytest
from freezegun import freeze_time

from escrow.codes import format_code, is_valid_code, parse_code
from escrow.exceptions import ConcurrentEscrowUpdate, EscrowCodeExhausted, EscrowNotFound
from escrow.models import Escrow, EscrowTransaction
from escrow.repository import EscrowRepository
from escrow.transitions import EscrowStatus
from projects.models import Bid


class TestCodes:

    def test_format(self):
        assert format_code(2026, 7) == "ESC-2026-007"

    @pytest.mark.parametrize("code,expected", [
        ("ESC-2026-001", (2026, 1)),
        ("ESC-2026-999", (2026, 999)),
        ("ESC-2026-000", None),
        ("ESC-26-001", None),
        ("esc-2026-001", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, code, expected):
        assert parse_code(code) == expected
        assert is_valid_code(code) == (expected is not None)


@pytest.fixture
def repository():
    return EscrowRepository()


@pytest.fixture
def make_row(db, project, homeowner, contractor):
    def _make(code, **fields):
        bid = Bid.objects.create(project=project, contractor=contractor, price=100_000_000)
        fields.setdefault('amount', 10_000_000)
        fields.setdefault('currency', 'VND')
        return Escrow.objects.create(code=code, project=project, bid=bid, homeowner=homeowner, **fields)
    return _make


@pytest.mark.django_db
class TestNextCode:

    def test_first_code_of_the_year(self, repository):
        assert repository.next_code(2026) == "ESC-2026-001"

    def test_increments_last_code_of_the_same_year(self, repository, make_row):
        make_row("ESC-2026-001")
        make_row("ESC-2026-002")
        make_row("ESC-2025-017")

        assert repository.next_code(2026) == "ESC-2026-003"
        assert repository.next_code(2025) == "ESC-2025-018"

    def test_malformed_codes_are_skipped(self, repository, make_row):
        make_row("ESC-2026-004")
        make_row("ESC-2026-ABC")
        make_row("ESC-2026-1000")

        assert repository.next_code(2026) == "ESC-2026-005"

    def test_only_malformed_codes_start_a_fresh_sequence(self, repository, make_row):
        make_row("ESC-2026-XYZ")

        assert repository.next_code(2026) == "ESC-2026-001"

    def test_exhausted_year_raises(self, repository, make_row):
        make_row("ESC-2026-999")

        with pytest.raises(EscrowCodeExhausted):
            repository.next_code(2026)

    @freeze_time("2027-01-01 10:00:00")
    def test_service_uses_the_current_year(self, service, bidding_settings, project, bid, homeowner, make_row):
        make_row("ESC-2026-005", status=EscrowStatus.CANCELLED)

        escrow = service.create_escrow(project=project, bid=bid, homeowner=homeowner, bid_price=bid.price)

        assert escrow.code == "ESC-2027-001"


@pytest.mark.django_db
class TestLookups:

    def test_get_by_code_and_project(self, repository, make_row, project):
        row = make_row("ESC-2026-004")

        assert repository.get_by_code("ESC-2026-004").pk == row.pk
        assert repository.get_by_project(project.pk).pk == row.pk

    @pytest.mark.parametrize("lookup,arg", [
        ("get", 999999),
        ("get", "not-a-number"),
        ("get_by_code", "ESC-2026-404"),
        ("get_by_project", 999999),
    ])
    def test_missing_escrow_raises_not_found(self, repository, lookup, arg):
        with pytest.raises(EscrowNotFound):
            getattr(repository, lookup)(arg)

    def test_exists_for_bid(self, repository, make_row):
        row = make_row("ESC-2026-001")
        assert repository.exists_for_bid(row.bid_id)


@pytest.mark.django_db
class TestVersionedSave:

    def test_save_bumps_version(self, repository, make_row):
        row = make_row("ESC-2026-001")
        row.status = EscrowStatus.HELD

        repository.save(row)

        row.refresh_from_db()
        assert row.version == 1
        assert row.status == EscrowStatus.HELD

    def test_stale_instance_is_rejected(self, repository, make_row):
        row = make_row("ESC-2026-001")
        first = repository.get(row.pk)
        second = repository.get(row.pk)

        first.status = EscrowStatus.HELD
        repository.save(first)

        second.status = EscrowStatus.CANCELLED
        with pytest.raises(ConcurrentEscrowUpdate):
            repository.save(second)

        row.refresh_from_db()
        assert row.status == EscrowStatus.HELD
        assert row.version == 1

    def test_save_never_writes_amount(self, repository, make_row):
        row = make_row("ESC-2026-001", amount=10_000_000)
        row.amount = 1

        repository.save(row)

        row.refresh_from_db()
        assert row.amount == 10_000_000

    def test_log_appends_entry(self, repository, make_row, admin_user):
        row = make_row("ESC-2026-001")

        entry = repository.log(
            row, EscrowTransaction.Type.DISPUTED, actor=admin_user,
            note="Leaking pipes", evidence=("https://example.com/photo.jpg",),
        )

        assert entry.evidence == ["https://example.com/photo.jpg"]
        assert list(row.transactions.values_list('type', flat=True)) == ['DISPUTED']
