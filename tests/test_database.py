import sqlite3
import threading
import unittest
from datetime import date
from unittest.mock import patch

from database.category_dao import CategoryDAO
from database.db_manager import DatabaseManager
from database.goal_dao import GoalDAO
from database.template_dao import TemplateDAO
from database.transaction_dao import TransactionDAO
from database.user_profile_dao import UserProfileDAO
from models.transaction import Transaction
from services.materializer import Materializer
from utils.exceptions import DuplicateKey, StoreUnavailable

USER = "user-1"


class DatabaseTestCase(unittest.TestCase):
    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.db.initialize()
        self.categories = CategoryDAO(self.db)
        self.templates = TemplateDAO(self.db)
        self.transactions = TransactionDAO(self.db)
        self.categories.seed_defaults(USER)
        self.housing = next(c for c in self.categories.get_for_user(USER) if c.name == "Housing")

    def tearDown(self):
        self.db.close()

    def create_template(self, start=date(2025, 1, 1), frequency="monthly", **kwargs):
        fields = dict(
            user_id=USER,
            category_id=self.housing.id,
            type_="expense",
            amount=1200.0,
            currency="USD",
            description="Rent",
            start_date=start,
            frequency=frequency,
        )
        fields.update(kwargs)
        return self.templates.create(**fields)

    def make_tx(self, tx_date, template_id=None, amount=10.0, description="Coffee"):
        return Transaction(
            id=None, user_id=USER, category_id=self.housing.id, type="expense",
            amount=amount, currency="USD", description=description,
            date=tx_date, recurring_template_id=template_id,
        )


class TestCategoryDAO(DatabaseTestCase):
    def test_seed_is_idempotent(self):
        self.assertEqual(self.categories.seed_defaults(USER), 0)
        self.assertEqual(len(self.categories.get_for_user(USER)), 7)
        self.assertEqual(len(self.categories.get_for_user(USER, "income")), 3)

    def test_create_custom(self):
        cat = self.categories.create(USER, "Gym", "expense", icon="🏋️")
        self.assertTrue(cat.is_custom)
        self.assertEqual(self.categories.get_by_id(cat.id).name, "Gym")


    def test_update_and_delete(self):
        cat = self.categories.create(USER, "Gym", "expense")
        updated = self.categories.update(cat.id, "Fitness", "💪", "#00ff00")
        self.assertEqual((updated.name, updated.icon, updated.color), ("Fitness", "💪", "#00ff00"))
        self.assertFalse(self.categories.is_in_use(cat.id))

        self.categories.delete(cat.id)
        self.assertIsNone(self.categories.get_by_id(cat.id))

    def test_in_use_by_template(self):
        self.create_template()
        self.assertTrue(self.categories.is_in_use(self.housing.id))


class TestGoalDAO(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.goals = GoalDAO(self.db)

    def test_create_round_trip(self):
        goal = self.goals.create(
            USER, self.housing.id, "expense", 1500.0, "USD",
            timeframe="monthly", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31),
        )
        loaded = self.goals.get_by_id(goal.id)
        self.assertEqual(loaded.timeframe, "monthly")
        self.assertEqual((loaded.start_date, loaded.end_date), (date(2025, 1, 1), date(2025, 12, 31)))
        self.assertEqual(loaded.category_name, "Housing")
        self.assertTrue(loaded.is_active)

    def test_get_by_id_scoped_to_user(self):
        goal = self.goals.create(USER, self.housing.id, "expense", 100.0, "USD")
        self.assertIsNone(goal.timeframe)
        self.assertIsNotNone(self.goals.get_by_id(goal.id, USER))
        self.assertIsNone(self.goals.get_by_id(goal.id, "user-2"))

    def test_get_all_newest_first_and_active_filter(self):
        older = self.goals.create(USER, self.housing.id, "expense", 100.0, "USD")
        newer = self.goals.create(USER, self.housing.id, "expense", 200.0, "USD")
        self.assertEqual([g.id for g in self.goals.get_all(USER)], [newer.id, older.id])

        self.goals.update(older.id, is_active=False)
        self.assertEqual([g.id for g in self.goals.get_all(USER)], [newer.id])
        self.assertEqual(len(self.goals.get_all(USER, active_only=False)), 2)

    def test_update_clears_dates_and_rejects_unknown_fields(self):
        goal = self.goals.create(USER, self.housing.id, "expense", 100.0, "USD", start_date=date(2025, 1, 1))
        updated = self.goals.update(goal.id, start_date=None, target_amount=150.0)
        self.assertIsNone(updated.start_date)
        self.assertEqual(updated.target_amount, 150.0)
        with self.assertRaises(ValueError):
            self.goals.update(goal.id, category_id="other")

    def test_delete(self):
        goal = self.goals.create(USER, self.housing.id, "expense", 100.0, "USD")
        self.goals.delete(goal.id)
        self.assertIsNone(self.goals.get_by_id(goal.id))


class TestUserProfileDAO(DatabaseTestCase):
    def test_create_get_update(self):
        profiles = UserProfileDAO(self.db)
        self.assertIsNone(profiles.get_by_id(USER))

        created = profiles.create(USER)
        self.assertEqual(created.default_currency, "USD")

        updated = profiles.update(USER, "EUR")
        self.assertEqual(updated.default_currency, "EUR")
        self.assertEqual(updated.created_at, created.created_at)
        self.assertNotEqual(updated.updated_at, "")

    def test_duplicate_profile_is_store_error(self):
        profiles = UserProfileDAO(self.db)
        profiles.create(USER)
        with self.assertRaises(StoreUnavailable):
            profiles.create(USER)


class TestTemplateDAO(DatabaseTestCase):
    def test_create_round_trip(self):
        template = self.create_template(end_date=date(2025, 12, 31))
        loaded = self.templates.get_by_id(template.id)

        self.assertEqual(loaded.start_date, date(2025, 1, 1))
        self.assertEqual(loaded.end_date, date(2025, 12, 31))
        self.assertEqual(loaded.frequency, "monthly")
        self.assertTrue(loaded.is_active)
        self.assertEqual(loaded.exchange_rate_to_usd, 1.0)
        self.assertEqual(loaded.category_name, "Housing")

    def test_list_active_filters_user_and_state(self):
        keep = self.create_template()
        off = self.create_template()
        self.templates.set_active(off.id, False)
        self.create_template(user_id="user-2")

        self.assertEqual([t.id for t in self.templates.list_active_templates(USER)], [keep.id])
        self.assertEqual(len(self.templates.get_all(USER, active_only=False)), 2)

    def test_partial_update(self):
        template = self.create_template()
        updated = self.templates.update(template.id, amount=1300.0, end_date=date(2026, 1, 1))

        self.assertEqual(updated.amount, 1300.0)
        self.assertEqual(updated.end_date, date(2026, 1, 1))
        self.assertEqual(updated.description, "Rent")

        cleared = self.templates.update(template.id, end_date=None)
        self.assertIsNone(cleared.end_date)

    def test_update_rejects_unknown_fields(self):
        template = self.create_template()
        with self.assertRaises(ValueError):
            self.templates.update(template.id, start_date=date(2025, 2, 1))

    def test_delete_keeps_materialized_rows(self):
        template = self.create_template()
        tx = self.transactions.insert_transaction(self.make_tx(date(2025, 1, 1), template.id))
        self.templates.delete(template.id)

        self.assertIsNone(self.templates.get_by_id(template.id))
        self.assertIsNone(self.transactions.get_by_id(tx.id).recurring_template_id)


class TestTransactionDAO(DatabaseTestCase):
    def test_insert_assigns_id(self):
        tx = self.transactions.insert_transaction(self.make_tx(date(2025, 3, 3)))
        self.assertIsNotNone(tx.id)
        self.assertEqual(tx.date, date(2025, 3, 3))
        self.assertEqual(tx.category_name, "Housing")

    def test_same_template_same_day_is_duplicate(self):
        template = self.create_template()
        self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1), template.id))
        with self.assertRaises(DuplicateKey):
            self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1), template.id))
        # other dates are fine
        self.transactions.insert_transaction(self.make_tx(date(2025, 3, 1), template.id))
        self.assertEqual(len(self.transactions.get_by_template(template.id)), 2)

    def test_manual_rows_never_collide(self):
        self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1)))
        self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1)))
        self.assertEqual(len(self.transactions.get_for_user(USER, date(2025, 2, 1))), 2)

    def test_unknown_category_is_store_error(self):
        bad = self.make_tx(date(2025, 2, 1))
        bad.category_id = "missing"
        with self.assertRaises(StoreUnavailable):
            self.transactions.insert_transaction(bad)

    def test_find_matching(self):
        self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1), amount=12.5))
        found = self.transactions.find_matching_transaction(
            USER, date(2025, 2, 1), self.housing.id, 12.5, "Coffee", "expense"
        )
        self.assertIsNotNone(found)
        self.assertIsNone(self.transactions.find_matching_transaction(
            USER, date(2025, 2, 1), self.housing.id, 13.0, "Coffee", "expense"
        ))
        self.assertIsNone(self.transactions.find_matching_transaction(
            USER, date(2025, 2, 2), self.housing.id, 12.5, "Coffee", "expense"
        ))

    def test_window_is_newest_first_and_limited(self):
        for day in (1, 5, 9, 12):
            self.transactions.insert_transaction(self.make_tx(date(2025, 4, day), description=f"d{day}"))

        rows = self.transactions.get_for_user(USER, date(2025, 4, 2), date(2025, 4, 10))
        self.assertEqual([r.description for r in rows], ["d9", "d5"])

        limited = self.transactions.get_for_user(USER, date(2025, 4, 1), limit=3)
        self.assertEqual([r.description for r in limited], ["d12", "d9", "d5"])

    def test_missing_row_after_insert_is_store_error(self):
        with patch.object(self.transactions, "get_by_id", return_value=None):
            with self.assertRaises(StoreUnavailable):
                self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1)))

    def test_duplicate_keeps_other_pending_writes(self):
        template = self.create_template()
        self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1), template.id))
        conn = self.db.get_connection()
        conn.execute(
            """INSERT INTO transactions (id, user_id, category_id, type, amount, date)
               VALUES ('other', ?, ?, 'expense', 5.0, '2025-02-02')""",
            (USER, self.housing.id),
        )

        with self.assertRaises(DuplicateKey):
            self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1), template.id))
        conn.commit()

        self.assertIsNotNone(self.transactions.get_by_id("other"))

    def test_failed_insert_leaves_no_open_transaction(self):
        bad = self.make_tx(date(2025, 2, 1))
        bad.category_id = "missing"
        with self.assertRaises(StoreUnavailable):
            self.transactions.insert_transaction(bad)
        self.assertFalse(self.db.get_connection().in_transaction)

    def test_insert_waits_for_connection_lock(self):
        done = threading.Event()

        def insert():
            self.transactions.insert_transaction(self.make_tx(date(2025, 2, 1)))
            done.set()

        with self.db.lock:
            worker = threading.Thread(target=insert)
            worker.start()
            self.assertFalse(done.wait(0.2))
        worker.join(5)

        self.assertTrue(done.is_set())
        self.assertEqual(len(self.transactions.get_for_user(USER, date(2025, 2, 1))), 1)

    def test_sum_amount_by_category_and_window(self):
        for day, amount in ((1, 10.0), (5, 20.0), (9, 40.0)):
            self.transactions.insert_transaction(self.make_tx(date(2025, 4, day), amount=amount))

        total = self.transactions.sum_amount(
            USER, self.housing.id, "expense", date(2025, 4, 2), date(2025, 4, 9)
        )
        self.assertEqual(total, 60.0)
        self.assertEqual(self.transactions.sum_amount(
            USER, self.housing.id, "income", date(2025, 4, 1), date(2025, 4, 30)
        ), 0.0)


class TestDatabaseTransaction(DatabaseTestCase):
    def test_error_rolls_back_block(self):
        conn = self.db.get_connection()
        with self.assertRaises(sqlite3.OperationalError):
            with self.db.transaction() as tx:
                tx.execute(
                    "INSERT INTO categories (id, user_id, name, transaction_type) "
                    "VALUES ('c1', ?, 'Gym', 'expense')",
                    (USER,),
                )
                tx.execute("SELECT * FROM no_such_table")

        self.assertFalse(conn.in_transaction)
        self.assertIsNone(self.categories.get_by_id("c1"))

    def test_success_commits(self):
        with self.db.transaction() as tx:
            tx.execute(
                "INSERT INTO categories (id, user_id, name, transaction_type) "
                "VALUES ('c1', ?, 'Gym', 'expense')",
                (USER,),
            )
        self.assertFalse(self.db.get_connection().in_transaction)
        self.assertEqual(self.categories.get_by_id("c1").name, "Gym")

    def test_missing_schema_raises_store_unavailable(self):
        db = DatabaseManager(":memory:")
        try:
            with self.assertRaises(StoreUnavailable):
                TransactionDAO(db).get_for_user(USER, date(2025, 1, 1))
            with self.assertRaises(StoreUnavailable):
                TemplateDAO(db).list_active_templates(USER)
        finally:
            db.close()


class TestMaterializerWithDatabase(DatabaseTestCase):
    def test_two_runs_same_day(self):
        self.create_template(start=date(2025, 1, 1))
        self.create_template(start=date(2025, 1, 15), description="Internet", amount=60.0)
        materializer = Materializer(self.templates, self.transactions)

        first = materializer.materialize_all(USER, date(2025, 6, 1))
        second = materializer.materialize_all(USER, date(2025, 6, 1))

        self.assertEqual((first.created_count, first.errors), (1, []))
        self.assertEqual((second.created_count, second.errors), (0, []))
        self.assertEqual(len(self.transactions.get_for_user(USER, date(2025, 6, 1))), 1)

    def test_race_past_lookup_is_stopped_by_unique_index(self):
        """Both runs see no match; the store's unique index rejects the second insert."""
        self.create_template(start=date(2025, 1, 1))
        materializer = Materializer(self.templates, self.transactions)

        with patch.object(self.transactions, "find_matching_transaction", return_value=None):
            first = materializer.materialize_all(USER, date(2025, 6, 1))
            second = materializer.materialize_all(USER, date(2025, 6, 1))

        self.assertEqual(first.created_count, 1)
        self.assertEqual(second.created_count, 0)
        self.assertEqual(second.errors, [])
        self.assertEqual(second.skipped_duplicates, 1)


if __name__ == "__main__":
    unittest.main()
