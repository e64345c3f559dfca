"""
Tests for cart storage backends.
"""
import json
import os
import tempfile
from pathlib import Path
from unittest import mock

from django.test import SimpleTestCase

from shop.cart.storage import (
    CART_COUPON_KEY,
    CART_ITEMS_KEY,
    CartState,
    CartStore,
    FileStorage,
    MemoryStorage,
)


class FileStorageTest(SimpleTestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "state" / "cart.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_round_trip(self):
        """Test that values written by one instance are read by another."""
        FileStorage(self.path).set_item("a", "1")
        storage = FileStorage(self.path)

        self.assertEqual(storage.get_item("a"), "1")
        storage.remove_item("a")
        self.assertIsNone(FileStorage(self.path).get_item("a"))

    def test_missing_file(self):
        self.assertIsNone(FileStorage(self.path).get_item("a"))

    def test_corrupt_file_reads_as_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{truncated", encoding="utf-8")

        self.assertIsNone(FileStorage(self.path).get_item("a"))

    def test_no_temp_files_left_behind(self):
        storage = FileStorage(self.path)
        storage.set_item("a", "1")
        storage.set_item("b", "2")

        self.assertEqual(os.listdir(self.path.parent), ["cart.json"])

    def test_failed_replace_removes_temp_file(self):
        """Test that a write that cannot be moved into place leaves nothing behind."""
        storage = FileStorage(self.path)
        storage.set_item("a", "1")

        with mock.patch("shop.cart.storage.os.replace", side_effect=OSError("disk full")):
            with self.assertLogs("shop.cart.storage", level="WARNING"):
                storage.set_item("b", "2")

        self.assertEqual(os.listdir(self.path.parent), ["cart.json"])
        self.assertIsNone(FileStorage(self.path).get_item("b"))


class CartStoreTest(SimpleTestCase):

    def setUp(self):
        self.storage = MemoryStorage()
        self.store = CartStore(self.storage)

    def test_empty_storage(self):
        state = self.store.load()
        self.assertEqual(state, CartState())

    def test_save_and_load(self):
        state = CartState(
            lines=[{"product_id": "p", "quantity": 1}],
            coupon_code="PROMO10",
            checkout_key="key-1",
        )
        self.store.save(state)

        self.assertEqual(self.store.load(), state)

    def test_save_without_coupon_removes_entry(self):
        self.store.save(CartState(coupon_code="PROMO10"))
        self.store.save(CartState())

        self.assertIsNone(self.storage.get_item(CART_COUPON_KEY))

    def test_invalid_json_is_discarded(self):
        """Test that an unreadable entry is logged and removed."""
        self.storage.set_item(CART_ITEMS_KEY, "not json")

        with self.assertLogs("shop.cart.storage", level="WARNING") as logs:
            state = self.store.load()

        self.assertEqual(state.lines, [])
        self.assertIsNone(self.storage.get_item(CART_ITEMS_KEY))
        self.assertIn("cart_store_discarded", logs.output[0])

    def test_unversioned_entry_is_discarded(self):
        self.storage.set_item(CART_ITEMS_KEY, json.dumps({"lines": []}))

        self.assertEqual(self.store.load().lines, [])
        self.assertIsNone(self.storage.get_item(CART_ITEMS_KEY))

    def test_lines_must_be_records(self):
        self.storage.set_item(CART_ITEMS_KEY, json.dumps({"version": 1, "lines": ["x"]}))

        self.assertEqual(self.store.load().lines, [])
        self.assertIsNone(self.storage.get_item(CART_ITEMS_KEY))
