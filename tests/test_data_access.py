import pytest

from ledger_assistant.ai_query.catalog import EntityName
from ledger_assistant.core.data_access import DataAccess, QueryArgumentError


@pytest.fixture
def invoices(db_session):
    return DataAccess(db_session).delegate(EntityName.INVOICE)


@pytest.mark.asyncio
async def test_find_many_filters_orders_and_selects(invoices, ledger):
    rows = await invoices.find_many(
        {
            "where": {"companyId": "T1", "status": "PAID"},
            "select": {"invoiceNo": True, "total": True},
            "orderBy": {"total": "desc"},
            "take": 2,
        }
    )

    assert rows == [
        {"invoiceNo": "INV-0001", "total": 1000.0},
        {"invoiceNo": "INV-0002", "total": 500.0},
    ]


@pytest.mark.asyncio
async def test_find_many_operators(invoices, ledger):
    rows = await invoices.find_many(
        {
            "where": {
                "companyId": "T1",
                "date": {"gte": "2026-02-01", "lt": "2026-03-01"},
                "invoiceNo": {"startsWith": "inv-", "mode": "insensitive"},
                "NOT": {"status": "SENT"},
            },
            "select": {"invoiceNo": True, "date": True},
            "orderBy": [{"date": "asc"}],
        }
    )

    assert rows == [
        {"invoiceNo": "INV-0002", "date": "2026-02-03"},
        {"invoiceNo": "INV-0003", "date": "2026-02-20"},
    ]


@pytest.mark.asyncio
async def test_or_and_in_filters(invoices, ledger):
    rows = await invoices.find_many(
        {
            "where": {
                "companyId": "T1",
                "OR": [{"contactId": "C2"}, {"total": {"gte": 1000}}],
                "status": {"in": ["PAID", "SENT"]},
            },
            "select": {"invoiceNo": True},
            "orderBy": {"invoiceNo": "asc"},
        }
    )

    assert [r["invoiceNo"] for r in rows] == ["INV-0001", "INV-0003", "INV-0004"]


@pytest.mark.asyncio
async def test_find_first_and_unique(invoices, ledger):
    first = await invoices.find_first(
        {"where": {"companyId": "T1"}, "orderBy": {"date": "asc"}}
    )
    assert first["invoiceNo"] == "INV-0004"
    assert first["companyId"] == "T1"


@pytest.mark.asyncio
async def test_find_unique_by_id(db_session, ledger):
    contacts = DataAccess(db_session).delegate(EntityName.CONTACT)

    found = await contacts.find_unique({"where": {"companyId": "T1", "id": "C1"}})
    by_equals = await contacts.find_unique(
        {"where": {"companyId": "T1", "id": {"equals": "C2"}}}
    )
    other_tenant = await contacts.find_unique({"where": {"companyId": "T1", "id": "C9"}})

    assert found["name"] == "Alpha Sdn Bhd"
    assert by_equals["name"] == "Beta Enterprise"
    assert other_tenant is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "where",
    [
        {"companyId": "T1"},
        {"companyId": "T1", "invoiceNo": "INV-0001"},
        {"companyId": "T1", "id": {"in": ["a", "b"]}},
        {"companyId": "T1", "id": None},
    ],
)
async def test_find_unique_needs_an_id(invoices, ledger, where):
    with pytest.raises(QueryArgumentError):
        await invoices.find_unique({"where": where})


@pytest.mark.asyncio
async def test_insensitive_mode_applies_to_equals_and_in(invoices, ledger):
    equals = await invoices.count(
        {"where": {"companyId": "T1", "status": {"equals": "paid", "mode": "insensitive"}}}
    )
    within = await invoices.count(
        {"where": {"companyId": "T1", "status": {"in": ["sent"], "mode": "insensitive"}}}
    )
    excluded = await invoices.count(
        {"where": {"companyId": "T1", "status": {"not": "Paid", "mode": "insensitive"}}}
    )
    sensitive = await invoices.count({"where": {"companyId": "T1", "status": "paid"}})

    assert equals == 4
    assert within == 1
    assert excluded == 1
    assert sensitive == 0


@pytest.mark.asyncio
async def test_count(invoices, ledger):
    assert await invoices.count({"where": {"companyId": "T1"}}) == 5
    assert await invoices.count({"where": {"companyId": "T2"}}) == 1


@pytest.mark.asyncio
async def test_aggregate(invoices, ledger):
    result = await invoices.aggregate(
        {
            "where": {"companyId": "T1", "status": "PAID"},
            "_sum": {"total": True},
            "_max": {"total": True},
            "_count": True,
        }
    )

    assert result == {
        "_sum": {"total": 1875.0},
        "_max": {"total": 1000.0},
        "_count": {"_all": 4},
    }


@pytest.mark.asyncio
async def test_group_by_orders_by_aggregate(invoices, ledger):
    rows = await invoices.group_by(
        {
            "by": ["contactId"],
            "where": {"companyId": "T1", "status": "PAID"},
            "_sum": {"total": True},
            "_count": {"id": True},
            "orderBy": {"_sum": {"total": "desc"}},
            "take": 2,
        }
    )

    assert rows == [
        {"contactId": "C1", "_sum": {"total": 1500.0}, "_count": {"id": 2}},
        {"contactId": "C2", "_sum": {"total": 300.0}, "_count": {"id": 1}},
    ]


@pytest.mark.parametrize(
    "args",
    [
        {"where": {"password": "x"}},
        {"where": {"company_id": "T1"}},
        {"where": {"total": {"regex": ".*"}}},
        {"where": {"date": {"gte": "last tuesday"}}},
        {"select": {"secret": True}},
        {"orderBy": {"total": "sideways"}},
        {"take": -1},
    ],
)
@pytest.mark.asyncio
async def test_invalid_arguments_raise(invoices, ledger, args):
    with pytest.raises(QueryArgumentError):
        await invoices.find_many(args)


@pytest.mark.asyncio
async def test_group_by_needs_fields(invoices, ledger):
    with pytest.raises(QueryArgumentError):
        await invoices.group_by({"where": {"companyId": "T1"}, "_sum": {"total": True}})


@pytest.mark.asyncio
async def test_aggregate_needs_something_to_compute(invoices, ledger):
    with pytest.raises(QueryArgumentError):
        await invoices.aggregate({"where": {"companyId": "T1"}})
