"""
Tests for playlist write actions, driven through the client.
"""

from unittest import IsolatedAsyncioTestCase

from orm_mcp.browser.client import LearningPlatformClient
from orm_mcp.browser.models import Collection
from orm_mcp.browser.outcomes import ErrorKind, Fatal, Retryable, Success

from .fakes import FakePlatform, make_credentials, make_options

BOOK = "9781492056348"
OTHER_BOOK = "9781098125967"


class ActionTestCase(IsolatedAsyncioTestCase):
    def setUp(self):
        self.platform = FakePlatform()
        self.client = LearningPlatformClient(make_options(), make_credentials(), page_factory=self.platform.page_factory)

    async def asyncTearDown(self):
        await self.client.close()


class TestCreateCollection(ActionTestCase):
    """Tests for create_collection."""

    async def test_create_then_details_round_trip(self):
        """A created collection should be readable back by id, empty, with the same name."""
        created = await self.client.create_collection("Weekend reading", "Books for Saturday")

        self.assertIsInstance(created, Success)
        collection = created.payload
        self.assertIsInstance(collection, Collection)
        self.assertEqual(collection.name, "Weekend reading")
        self.assertEqual(collection.item_count, 0)

        details = await self.client.get_collection_details(collection.collection_id)

        self.assertIsInstance(details, Success)
        self.assertEqual(details.payload.name, "Weekend reading")
        self.assertEqual(details.payload.description, "Books for Saturday")
        self.assertEqual(details.payload.item_count, 0)

    async def test_new_collection_is_listed(self):
        """The new collection should appear in list_collections."""
        self.platform.add_collection("Existing", [BOOK])

        created = await self.client.create_collection("Fresh")
        listed = await self.client.list_collections()

        self.assertIsInstance(listed, Success)
        self.assertIn(created.payload.collection_id, [c.collection_id for c in listed.payload])
        self.assertEqual(len(listed.payload), 2)

    async def test_unconfirmed_create_is_ambiguous(self):
        """If the new collection never shows up the outcome is fatal and ambiguous."""
        self.platform.ignore_writes = True

        outcome = await self.client.create_collection("Ghost")

        self.assertIsInstance(outcome, Fatal)
        self.assertEqual(outcome.error.kind, ErrorKind.ACTION_UNCONFIRMED)
        self.assertTrue(outcome.error.ambiguous)

    async def test_empty_name_is_rejected(self):
        """An empty name should be rejected without opening the browser."""
        outcome = await self.client.create_collection("   ")

        self.assertIsInstance(outcome, Fatal)
        self.assertEqual(outcome.error.kind, ErrorKind.INVALID_ARGUMENT)
        self.assertEqual(self.platform.pages, [])


class TestAddToCollection(ActionTestCase):
    """Tests for add_to_collection."""

    async def test_add_is_idempotent(self):
        """Adding the same title twice should leave exactly one copy."""
        collection_id = self.platform.add_collection("Python")

        first = await self.client.add_to_collection(collection_id, BOOK)
        second = await self.client.add_to_collection(collection_id, BOOK)

        self.assertIsInstance(first, Success)
        self.assertTrue(first.payload["added"])
        self.assertIsInstance(second, Success)
        self.assertFalse(second.payload["added"])
        self.assertEqual(self.platform.collections[collection_id]["items"], [BOOK])

        details = await self.client.get_collection_details(collection_id)
        self.assertEqual(details.payload.item_count, 1)

    async def test_already_present_does_not_click(self):
        """A title already in the collection should not open the picker."""
        collection_id = self.platform.add_collection("Python", [BOOK])

        outcome = await self.client.add_to_collection(collection_id, BOOK)

        self.assertFalse(outcome.payload["added"])
        self.assertNotIn("add-to-playlist", self.platform.pages[0].clicks)

    async def test_unconfirmed_add_is_retryable(self):
        """An unobserved add is safe to retry."""
        collection_id = self.platform.add_collection("Python")
        self.platform.ignore_writes = True

        outcome = await self.client.add_to_collection(collection_id, BOOK)

        self.assertIsInstance(outcome, Retryable)
        self.assertEqual(outcome.error.kind, ErrorKind.ACTION_UNCONFIRMED)

    async def test_unknown_content_is_navigation_error(self):
        """A content id the platform does not know lands on its error page."""
        collection_id = self.platform.add_collection("Python")

        outcome = await self.client.add_to_collection(collection_id, "0000000000")

        self.assertIsInstance(outcome, Fatal)
        self.assertEqual(outcome.error.kind, ErrorKind.NAVIGATION_ERROR)


class TestRemoveFromCollection(ActionTestCase):
    """Tests for remove_from_collection."""

    async def test_remove_present_item(self):
        """Removing a listed title should take it out of the collection."""
        collection_id = self.platform.add_collection("Python", [BOOK, OTHER_BOOK])

        outcome = await self.client.remove_from_collection(collection_id, OTHER_BOOK)

        self.assertIsInstance(outcome, Success)
        self.assertTrue(outcome.payload["removed"])
        self.assertEqual(self.platform.collections[collection_id]["items"], [BOOK])

    async def test_remove_absent_item_is_noop(self):
        """Removing a title that is not listed should succeed without clicking."""
        collection_id = self.platform.add_collection("Python", [BOOK])

        outcome = await self.client.remove_from_collection(collection_id, OTHER_BOOK)

        self.assertIsInstance(outcome, Success)
        self.assertFalse(outcome.payload["removed"])
        self.assertNotIn("remove-item", self.platform.pages[0].clicks)

    async def test_remove_accepts_confirmation_dialog(self):
        """A confirmation dialog should be accepted."""
        collection_id = self.platform.add_collection("Python", [BOOK])
        self.platform.confirm_removals = True

        outcome = await self.client.remove_from_collection(collection_id, BOOK)

        self.assertIsInstance(outcome, Success)
        self.assertTrue(outcome.payload["removed"])
        self.assertIn("confirm-remove", self.platform.pages[0].clicks)
        self.assertEqual(self.platform.collections[collection_id]["items"], [])

    async def test_unconfirmed_remove_is_ambiguous(self):
        """An unobserved removal is fatal and ambiguous."""
        collection_id = self.platform.add_collection("Python", [BOOK])
        self.platform.ignore_writes = True

        outcome = await self.client.remove_from_collection(collection_id, BOOK)

        self.assertIsInstance(outcome, Fatal)
        self.assertEqual(outcome.error.kind, ErrorKind.ACTION_UNCONFIRMED)
        self.assertTrue(outcome.error.ambiguous)
