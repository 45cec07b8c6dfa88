from unittest import mock

from django.test import TestCase

from readinggroup.exceptions import (
    BadFile,
    BadRequest,
    Forbidden,
    StorageUnavailable,
    TopicNotFound,
    Unauthenticated,
)
from readinggroup.storage import DOCUMENT_STORAGE
from readinggroup.topics import (
    MAX_TOPIC_LENGTH,
    attach_file,
    get_proposer,
    list_topics,
    list_voters,
    propose_topic,
)

from .utils import (
    MemoryStoreMixin,
    OrmStoreMixin,
    StoreHelpersMixin,
    make_admin,
    make_pdf,
    make_principal,
)


class TopicOperationTests(StoreHelpersMixin):
    def setUp(self):
        super().setUp()
        self.reader = make_principal("reader@example.com", "Reader")
        self.admin = make_admin()

    def test_propose_topic(self):
        topic = propose_topic(self.reader, "  Vector clocks  ", self.store)
        self.assertEqual(topic.text, "Vector clocks")
        self.assertEqual(topic.votes, 0)
        self.assertEqual(topic.proposed_by, "reader@example.com")
        self.assertFalse(topic.is_selected)
        self.assertEqual(self.member("reader@example.com").display_name, "Reader")

    def test_propose_topic_validation(self):
        with self.assertRaises(BadRequest):
            propose_topic(self.reader, "   ", self.store)
        with self.assertRaises(BadRequest):
            propose_topic(self.reader, "x" * (MAX_TOPIC_LENGTH + 1), self.store)
        with self.assertRaises(Unauthenticated):
            propose_topic(None, "Text", self.store)
        self.assertEqual(list_topics(self.store), [])

    def test_list_topics_orders_by_votes(self):
        low = self.add_topic("low")
        high = self.add_topic("high", votes=2, upvoted_by=["a@x.org", "b@x.org"])
        self.assertEqual([t.id for t in list_topics(self.store)], [high.id, low.id])

    def test_list_voters_merges_both_sides(self):
        legacy = self.add_member("legacy@example.com", "Legacy Reader")
        lagging = self.add_member("lagging@example.com")
        topic = self.add_topic(
            upvoted_by=[
                "reader@example.com",
                str(legacy.id),
                "legacy@example.com",
                "9999",
            ],
            votes=4,
        )
        lagging.upvoted_topics = [topic.id]
        self.store.save_member(lagging)

        voters = list_voters(topic.id, self.store)
        self.assertEqual(
            voters,
            [
                {"identity": "reader@example.com", "name": "reader"},
                {"identity": "legacy@example.com", "name": "Legacy Reader"},
                {"identity": "lagging@example.com", "name": "lagging"},
            ],
        )

    def test_list_voters_missing_topic(self):
        with self.assertRaises(TopicNotFound):
            list_voters(1234, self.store)

    def test_get_proposer(self):
        self.add_member("p@example.com", "Proposer")
        known = self.add_topic(proposed_by="p@example.com")
        unknown = self.add_topic(proposed_by="gone@example.com")
        dangling = self.add_topic(proposed_by="4242")

        self.assertEqual(
            get_proposer(known.id, self.store),
            {"identity": "p@example.com", "name": "Proposer"},
        )
        self.assertEqual(
            get_proposer(unknown.id, self.store),
            {"identity": "gone@example.com", "name": "gone"},
        )
        self.assertIsNone(get_proposer(dangling.id, self.store))

    def test_attach_file(self):
        topic = self.add_topic()
        with self.run_on_commit():
            updated = attach_file(self.admin, topic.id, make_pdf("first.pdf"), self.store)
        self.assertEqual(updated.document.original_name, "first.pdf")
        self.assertTrue(DOCUMENT_STORAGE.exists(updated.document.path))
        self.assertEqual(self.topic(topic.id).document, updated.document)

    def test_reupload_releases_previous_file(self):
        topic = self.add_topic()
        with self.run_on_commit():
            first = attach_file(self.admin, topic.id, make_pdf("first.pdf"), self.store)
        with self.run_on_commit():
            second = attach_file(
                self.admin, topic.id, make_pdf("second.pdf"), self.store
            )
        self.assertFalse(DOCUMENT_STORAGE.exists(first.document.path))
        self.assertTrue(DOCUMENT_STORAGE.exists(second.document.path))
        self.assertEqual(self.topic(topic.id).document.original_name, "second.pdf")

    def test_attach_file_checks_before_storing(self):
        topic = self.add_topic()
        with mock.patch("readinggroup.topics.store_document") as store_document:
            with self.assertRaises(Forbidden):
                attach_file(self.reader, topic.id, make_pdf(), self.store)
            with self.assertRaises(TopicNotFound):
                attach_file(self.admin, topic.id + 100, make_pdf(), self.store)
        store_document.assert_not_called()

    def test_attach_file_rejects_bad_upload(self):
        topic = self.add_topic()
        with self.assertRaises(BadFile):
            attach_file(self.admin, topic.id, None, self.store)
        with self.assertRaises(BadFile):
            attach_file(
                self.admin, topic.id, make_pdf("a.txt", b"x", "text/plain"), self.store
            )
        self.assertIsNone(self.topic(topic.id).document)

    def test_attach_file_releases_new_file_when_update_fails(self):
        topic = self.add_topic()
        with mock.patch.object(
            self.store, "save_topic", side_effect=StorageUnavailable()
        ):
            with mock.patch("readinggroup.topics.release_document") as release:
                with self.assertRaises(StorageUnavailable):
                    attach_file(self.admin, topic.id, make_pdf(), self.store)
        release.assert_called_once()
        self.assertIsNone(self.topic(topic.id).document)


class OrmTopicOperationTests(OrmStoreMixin, TopicOperationTests, TestCase):
    pass


class MemoryTopicOperationTests(MemoryStoreMixin, TopicOperationTests, TestCase):
    pass
