import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from regain.db import (
    InMemoryDbClient,
    OrderRecord,
    SiteRecord,
    SqlDbClient,
    UserRecord,
    is_valid_id,
    new_id,
)
from regain.errors import DuplicateEmailError
from regain.types import OrderStatus

CENTER = (72.8777, 19.0760)


def make_site(name, email="seller@example.com", lng=CENTER[0], lat=CENTER[1], **extra):
    return SiteRecord(
        name=name,
        email=email,
        phone="555-0100",
        longitude=lng,
        latitude=lat,
        materials={"bricks": {"stock": 100, "price": 0.5}},
        **extra,
    )


def make_order(site, buyer="buyer@example.com", **extra):
    return OrderRecord(
        buyer_email=buyer,
        seller_email=site.email,
        site_id=site.site_id,
        site_name=site.name,
        materials={"bricks": {"quantity": 10, "price": 0.5}},
        total_amount=5.0,
        buyer_details={"firstName": "Bea", "lastName": "Buyer", "phone": None},
        **extra,
    )


class DbClientContract:
    """Behaviour shared by every DbClient implementation."""

    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()

    def test_create_and_get_user(self):
        self.db.create_user(
            UserRecord(
                email="buyer@example.com",
                password_hash="hash",
                first_name="Bea",
                last_name="Buyer",
            )
        )
        user = self.db.get_user("buyer@example.com")
        self.assertIsNotNone(user)
        self.assertEqual(user.first_name, "Bea")
        self.assertIsNone(self.db.get_user("nobody@example.com"))

    def test_duplicate_email_is_rejected(self):
        record = UserRecord(
            email="buyer@example.com", password_hash="h", first_name="A", last_name="B"
        )
        self.db.create_user(record)
        with self.assertRaises(DuplicateEmailError):
            self.db.create_user(
                UserRecord(
                    email="buyer@example.com",
                    password_hash="h2",
                    first_name="C",
                    last_name="D",
                )
            )
        self.assertEqual(self.db.get_user("buyer@example.com").first_name, "A")

    def test_list_sites_by_owner(self):
        self.db.create_site(make_site("Mine", created_at=1.0))
        self.db.create_site(make_site("Theirs", email="other@example.com", created_at=2.0))
        self.assertEqual([s.name for s in self.db.list_sites()], ["Mine", "Theirs"])
        mine = self.db.list_sites(owner_email="seller@example.com")
        self.assertEqual([s.name for s in mine], ["Mine"])

    def test_find_sites_near_respects_radius_and_order(self):
        self.db.create_site(make_site("center"))
        self.db.create_site(make_site("north-5km", lat=CENTER[1] + 0.045))
        self.db.create_site(make_site("east-20km", lng=CENTER[0] + 0.19))
        self.db.create_site(make_site("pune", lng=73.8567, lat=18.5204))

        within_15 = self.db.find_sites_near(*CENTER, max_distance_m=15_000)
        self.assertEqual([s.name for s, _ in within_15], ["center", "north-5km"])
        for _, distance in within_15:
            self.assertLessEqual(distance, 15_000)

        within_25 = self.db.find_sites_near(*CENTER, max_distance_m=25_000)
        self.assertEqual(
            [s.name for s, _ in within_25], ["center", "north-5km", "east-20km"]
        )

        limited = self.db.find_sites_near(*CENTER, max_distance_m=25_000, limit=1)
        self.assertEqual([s.name for s, _ in limited], ["center"])

    def test_update_site_is_owner_scoped(self):
        site = self.db.create_site(make_site("Tower"))
        self.assertIsNone(
            self.db.update_site(site.site_id, "intruder@example.com", {"name": "Mine now"})
        )
        self.assertIsNone(self.db.update_site(new_id(), site.email, {"name": "X"}))

        updated = self.db.update_site(
            site.site_id,
            site.email,
            {"name": "Tower B", "is_active": False, "materials": {"sand": {"stock": 3, "price": 2.0}}},
        )
        self.assertEqual(updated.name, "Tower B")
        self.assertFalse(updated.is_active)
        self.assertEqual(updated.materials, {"sand": {"stock": 3, "price": 2.0}})
        self.assertEqual(self.db.get_site(site.site_id).name, "Tower B")

    def test_update_site_rejects_unknown_fields(self):
        site = self.db.create_site(make_site("Tower"))
        with self.assertRaises(ValueError):
            self.db.update_site(site.site_id, site.email, {"email": "x@example.com"})

    def test_orders_are_listed_by_role_newest_first(self):
        site = self.db.create_site(make_site("Tower"))
        first = self.db.create_order(make_order(site, created_at=1000.0))
        second = self.db.create_order(make_order(site, created_at=2000.0))
        self.db.create_order(make_order(site, buyer="other@example.com"))

        mine = self.db.list_orders(buyer_email="buyer@example.com")
        self.assertEqual([o.order_id for o in mine], [second.order_id, first.order_id])
        self.assertEqual(len(self.db.list_orders(seller_email=site.email)), 3)
        pending = self.db.list_orders(
            seller_email=site.email, status=OrderStatus.PENDING
        )
        self.assertEqual(len(pending), 3)

    def test_order_visible_only_to_participants(self):
        site = self.db.create_site(make_site("Tower"))
        order = self.db.create_order(make_order(site))
        self.assertIsNotNone(self.db.get_order(order.order_id, "buyer@example.com"))
        self.assertIsNotNone(self.db.get_order(order.order_id, site.email))
        self.assertIsNone(self.db.get_order(order.order_id, "stranger@example.com"))

    def test_update_order_status_is_seller_scoped(self):
        site = self.db.create_site(make_site("Tower"))
        order = self.db.create_order(make_order(site, updated_at=1.0))

        self.assertIsNone(
            self.db.update_order_status(
                order.order_id, "buyer@example.com", OrderStatus.APPROVED
            )
        )
        updated = self.db.update_order_status(
            order.order_id, site.email, OrderStatus.CANCELLED, cancel_reason="sold out"
        )
        self.assertEqual(updated.status, OrderStatus.CANCELLED)
        self.assertEqual(updated.cancel_reason, "sold out")
        self.assertGreater(updated.updated_at, 1.0)
        self.assertEqual(
            self.db.list_orders(seller_email=site.email, status=OrderStatus.PENDING), []
        )


class InMemoryDbClientTests(DbClientContract, unittest.TestCase):
    def make_db(self):
        return InMemoryDbClient()

    def test_reset_clears_everything(self):
        site = self.db.create_site(make_site("Tower"))
        self.db.create_order(make_order(site))
        self.db.reset()
        self.assertEqual(self.db.list_sites(), [])
        self.assertEqual(self.db.list_orders(), [])

    def test_concurrent_registrations_keep_first_user(self):
        barrier = threading.Barrier(8)

        def register(index):
            barrier.wait()
            try:
                self.db.create_user(
                    UserRecord(
                        email="race@example.com",
                        password_hash=f"hash-{index}",
                        first_name="Racer",
                        last_name=str(index),
                    )
                )
            except DuplicateEmailError:
                return None
            return index

        with ThreadPoolExecutor(max_workers=8) as pool:
            winners = [i for i in pool.map(register, range(8)) if i is not None]

        self.assertEqual(len(winners), 1)
        stored = self.db.get_user("race@example.com")
        self.assertEqual(stored.password_hash, f"hash-{winners[0]}")


class SqlDbClientTests(DbClientContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def make_db(self):
        return SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlDbClient("")


class IdTests(unittest.TestCase):
    def test_new_ids_are_valid(self):
        self.assertTrue(is_valid_id(new_id()))

    def test_rejects_malformed(self):
        for value in ("", "123", "Z" * 32, new_id() + "0"):
            self.assertFalse(is_valid_id(value))


if __name__ == "__main__":
    unittest.main()
