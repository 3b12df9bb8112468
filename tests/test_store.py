"""Tests for LedgerStore: invariants, category maintenance and concurrency."""

import asyncio
import threading
from decimal import Decimal

import pytest

from ledgerbook.ledger import InvalidInputError, LedgerStore, NotFoundError
from ledgerbook.models.record import ALL_CATEGORIES, Record, RecordKind
from ledgerbook.services.storage import PersistenceError


INCOME = RecordKind.INCOME
EXPENSE = RecordKind.EXPENSE


def make_record(record_id: str, category: str, kind=EXPENSE, amount="10") -> Record:
    return Record(
        id=record_id,
        kind=kind,
        amount=Decimal(amount),
        description=f"Item {record_id}",
        category=category,
        created_at=1_700_000_000,
    )


class TestCreate:
    """Tests for LedgerStore.create."""

    @pytest.mark.asyncio
    async def test_create_appends_and_persists(self, store, memory_storage):
        """Test that a created record is listed and saved."""
        record = await store.create(EXPENSE, Decimal("12.50"), "Coffee", "Cafe")

        assert record.id
        assert record.created_at > 0
        assert store.list_all() == [record]
        assert memory_storage.records == [record]
        assert len(memory_storage.saves) == 1

    @pytest.mark.asyncio
    async def test_create_trims_labels(self, store):
        record = await store.create(INCOME, Decimal("1"), "  Salary ", " Work  ")
        assert record.description == "Salary"
        assert record.category == "Work"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount, description, category",
        [
            (Decimal("0"), "x", "c"),
            (Decimal("-5"), "x", "c"),
            (Decimal("5"), "   ", "c"),
            (Decimal("5"), "x", ""),
            (Decimal("5"), "x", ALL_CATEGORIES),
        ],
    )
    async def test_invalid_input_changes_nothing(
        self, store, memory_storage, amount, description, category
    ):
        """Test that invalid input neither mutates nor saves."""
        with pytest.raises(InvalidInputError):
            await store.create(EXPENSE, amount, description, category)

        assert store.list_all() == []
        assert memory_storage.saves == []

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, store):
        records = [
            await store.create(EXPENSE, Decimal("1"), f"d{i}", "c") for i in range(20)
        ]
        assert len({r.id for r in records}) == 20

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        """Test that mutating a returned record does not touch the store."""
        record = await store.create(EXPENSE, Decimal("1"), "d", "c")
        record.description = "changed"
        store.list_all()[0].category = "changed"

        assert store.get(record.id).description == "d"
        assert store.get(record.id).category == "c"


class TestUpdateDelete:
    """Tests for LedgerStore.update and LedgerStore.delete."""

    @pytest.mark.asyncio
    async def test_update_preserves_identity(self, store):
        """Test that update keeps id, created_at and position."""
        first = await store.create(EXPENSE, Decimal("5"), "Bread", "Bakery")
        second = await store.create(EXPENSE, Decimal("7"), "Milk", "Market")

        updated = await store.update(first.id, INCOME, Decimal("9"), "Refund", "Market")

        assert updated.id == first.id
        assert updated.created_at == first.created_at
        assert updated.kind == INCOME
        assert [r.id for r in store.list_all()] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store, memory_storage):
        with pytest.raises(NotFoundError, match="not found"):
            await store.update("missing", EXPENSE, Decimal("1"), "d", "c")
        assert memory_storage.saves == []

    @pytest.mark.asyncio
    async def test_update_invalid_input_keeps_record(self, store):
        record = await store.create(EXPENSE, Decimal("5"), "Bread", "Bakery")
        with pytest.raises(InvalidInputError):
            await store.update(record.id, EXPENSE, Decimal("-1"), "Bread", "Bakery")
        assert store.get(record.id).amount == Decimal("5")

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, store, memory_storage):
        record = await store.create(EXPENSE, Decimal("5"), "Bread", "Bakery")
        await store.delete(record.id)

        assert store.list_all() == []
        assert memory_storage.records == []

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, store):
        await store.create(EXPENSE, Decimal("5"), "Bread", "Bakery")
        with pytest.raises(NotFoundError):
            await store.delete("missing")
        assert len(store) == 1


class TestCategories:
    """Tests for category listing, renaming and deletion."""

    @pytest.fixture
    def seeded(self, memory_storage):
        return LedgerStore(memory_storage, [
            make_record("1", "Market"),
            make_record("2", "Bakery"),
            make_record("3", "Market", kind=INCOME, amount="100"),
        ])

    def test_list_categories_includes_sentinel(self, seeded):
        assert seeded.list_categories() == sorted(["Market", "Bakery", ALL_CATEGORIES])

    def test_list_categories_on_empty_store(self, store):
        assert store.list_categories() == [ALL_CATEGORIES]

    def test_category_counts(self, seeded):
        assert seeded.category_counts() == {"Bakery": 1, "Market": 2}
        assert ALL_CATEGORIES not in seeded.category_counts()

    def test_records_for_category(self, seeded):
        assert [r.id for r in seeded.records_for_category("Market")] == ["1", "3"]
        assert len(seeded.records_for_category(ALL_CATEGORIES)) == 3
        assert len(seeded.records_for_category(None)) == 3
        assert seeded.records_for_category("Nowhere") == []

    def test_summarize(self, seeded):
        summary = seeded.summarize("Market")
        assert summary.category == "Market"
        assert summary.record_count == 2
        assert summary.total_income == Decimal("100")
        assert summary.total_expense == Decimal("10")
        assert summary.balance == Decimal("90")

        overall = seeded.summarize(ALL_CATEGORIES)
        assert overall.category is None
        assert overall.total_expense == Decimal("20")

    @pytest.mark.asyncio
    async def test_rename_category(self, seeded, memory_storage):
        """Test that every matching record is renamed and saved."""
        renamed = await seeded.rename_category(" Market ", "Supermarket")

        assert renamed == 2
        assert seeded.category_counts() == {"Bakery": 1, "Supermarket": 2}
        assert {r.category for r in memory_storage.records} == {"Bakery", "Supermarket"}

    @pytest.mark.asyncio
    async def test_rename_into_existing_category_merges(self, seeded):
        await seeded.rename_category("Bakery", "Market")
        assert seeded.category_counts() == {"Market": 3}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "old, new",
        [
            ("", "X"),
            ("Market", "   "),
            (ALL_CATEGORIES, "X"),
            ("Market", ALL_CATEGORIES),
            ("Market", "Market"),
        ],
    )
    async def test_rename_rejects_invalid_names(self, seeded, memory_storage, old, new):
        with pytest.raises(InvalidInputError):
            await seeded.rename_category(old, new)
        assert memory_storage.saves == []

    @pytest.mark.asyncio
    async def test_rename_unknown_category(self, seeded):
        with pytest.raises(NotFoundError, match="Nowhere"):
            await seeded.rename_category("Nowhere", "Somewhere")

    @pytest.mark.asyncio
    async def test_delete_category(self, seeded, memory_storage):
        removed = await seeded.delete_category("Market")

        assert removed == 2
        assert [r.id for r in seeded.list_all()] == ["2"]
        assert [r.id for r in memory_storage.records] == ["2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "  ", ALL_CATEGORIES])
    async def test_delete_category_rejects_invalid_names(self, seeded, name):
        with pytest.raises(InvalidInputError):
            await seeded.delete_category(name)
        assert len(seeded) == 3

    @pytest.mark.asyncio
    async def test_delete_unknown_category(self, seeded):
        with pytest.raises(NotFoundError):
            await seeded.delete_category("Nowhere")
        assert len(seeded) == 3


class TestScenarios:
    """End-to-end ledger behaviour."""

    @pytest.mark.asyncio
    async def test_two_categories(self, store):
        await store.create(EXPENSE, Decimal("12.50"), "Coffee", "Cafe")
        await store.create(INCOME, Decimal("100.00"), "Salary", "Work")

        assert store.category_counts() == {"Cafe": 1, "Work": 1}
        assert store.list_categories() == [ALL_CATEGORIES, "Cafe", "Work"]

    @pytest.mark.asyncio
    async def test_delete_category_twice(self, store):
        await store.create(EXPENSE, Decimal("1"), "a", "Cafe")
        await store.create(EXPENSE, Decimal("1"), "b", "Work")

        assert await store.delete_category("Cafe") == 1
        after_first = store.list_all()
        with pytest.raises(NotFoundError):
            await store.delete_category("Cafe")
        assert store.list_all() == after_first

    @pytest.mark.asyncio
    async def test_rename_count_matches_category_count(self, store):
        for category in ["A", "B", "A", "C", "A"]:
            await store.create(EXPENSE, Decimal("1"), "x", category)
        expected = store.category_counts()["A"]

        assert await store.rename_category("A", "Z") == expected
        assert store.category_counts() == {"B": 1, "C": 1, "Z": 3}


class TestPersistenceFailure:
    """A failed save raises but keeps the in-memory change."""

    @pytest.mark.asyncio
    async def test_create_kept_after_failed_save(self, failing_store):
        with pytest.raises(PersistenceError):
            await failing_store.create(EXPENSE, Decimal("5"), "Bread", "Bakery")
        assert len(failing_store) == 1

    @pytest.mark.asyncio
    async def test_delete_kept_after_failed_save(self, failing_storage):
        store = LedgerStore(failing_storage, [make_record("1", "Market")])
        with pytest.raises(PersistenceError):
            await store.delete("1")
        assert store.list_all() == []

    @pytest.mark.asyncio
    async def test_rename_kept_after_failed_save(self, failing_storage):
        store = LedgerStore(failing_storage, [make_record("1", "Market")])
        with pytest.raises(PersistenceError):
            await store.rename_category("Market", "Shop")
        assert store.list_categories() == [ALL_CATEGORIES, "Shop"]


class TestConstruction:
    """Tests for building a store from loaded records."""

    def test_initial_records_are_copied(self, memory_storage):
        records = [make_record("1", "Market")]
        store = LedgerStore(memory_storage, records)
        records[0].category = "changed"
        assert store.get("1").category == "Market"

    def test_duplicate_initial_ids_rejected(self, memory_storage):
        with pytest.raises(ValueError):
            LedgerStore(memory_storage, [make_record("1", "A"), make_record("1", "B")])


class TestConcurrency:
    """Concurrent callers never lose or duplicate records."""

    @pytest.mark.asyncio
    async def test_concurrent_tasks(self, store, memory_storage):
        await asyncio.gather(*[
            store.create(EXPENSE, Decimal("1"), f"d{i}", f"c{i % 3}") for i in range(50)
        ])

        records = store.list_all()
        assert len(records) == 50
        assert len({r.id for r in records}) == 50
        assert len(memory_storage.saves) == 50
        assert sum(store.category_counts().values()) == 50

    def test_concurrent_threads(self, store):
        """Each thread drives its own event loop, as Streamlit sessions do."""
        def worker(n):
            for i in range(10):
                asyncio.run(store.create(INCOME, Decimal("2"), f"t{n}-{i}", "Threads"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 80
        assert store.summarize("Threads").total_income == Decimal("160")

    @pytest.mark.asyncio
    async def test_mixed_operations(self, memory_storage):
        store = LedgerStore(memory_storage, [make_record(str(i), "Market") for i in range(20)])

        await asyncio.gather(
            *[store.delete(str(i)) for i in range(10)],
            *[store.create(EXPENSE, Decimal("1"), "new", "Bakery") for _ in range(5)],
        )

        assert store.category_counts() == {"Bakery": 5, "Market": 10}
