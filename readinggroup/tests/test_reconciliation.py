from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from readinggroup.contextmanagers import RECONCILE_LOCK, cache_lock
from readinggroup.reconciliation import reconcile_vote_state

from .utils import MemoryStoreMixin, OrmStoreMixin, StoreHelpersMixin


class ReconciliationTests(StoreHelpersMixin):
    def test_deduplicates_voters_and_fixes_counts(self):
        member = self.add_member("a@example.com")
        topic = self.add_topic(
            upvoted_by=[str(member.id), "a@example.com", "unknown@example.com"],
            votes=7,
        )

        self.assertEqual(reconcile_vote_state(self.store), 2)

        stored = self.topic(topic.id)
        self.assertEqual(stored.upvoted_by, ["a@example.com", "unknown@example.com"])
        self.assertEqual(stored.votes, 2)
        self.assertEqual(self.member("a@example.com").upvoted_topics, [topic.id])

    def test_drops_references_to_missing_topics(self):
        topic = self.add_topic()
        member = self.add_member("a@example.com")
        member.upvoted_topics = [topic.id, topic.id + 50]
        member.won_topics = [topic.id + 50]
        self.store.save_member(member)

        reconcile_vote_state(self.store)

        member = self.member("a@example.com")
        self.assertEqual(member.upvoted_topics, [])
        self.assertEqual(member.won_topics, [])

    def test_replays_selection_snapshot(self):
        self.add_member("p@example.com")
        self.add_member("a@example.com")
        topic = self.add_topic(
            proposed_by="p@example.com",
            is_selected=True,
            upvoted_by=["a@example.com"],
            votes=1,
            won_by=["p@example.com", "a@example.com"],
        )

        reconcile_vote_state(self.store)

        self.assertEqual(self.member("p@example.com").won_topics, [topic.id])
        self.assertEqual(self.member("a@example.com").won_topics, [topic.id])
        self.assertEqual(self.member("a@example.com").upvoted_topics, [topic.id])

    def test_consistent_state_is_left_alone(self):
        self.add_member("a@example.com")
        self.add_topic(upvoted_by=["a@example.com"], votes=1)
        reconcile_vote_state(self.store)
        self.assertEqual(reconcile_vote_state(self.store), 0)


class OrmReconciliationTests(OrmStoreMixin, ReconciliationTests, TestCase):
    def test_management_command(self):
        self.add_member("a@example.com")
        self.add_topic(upvoted_by=["a@example.com"], votes=3)

        out = StringIO()
        call_command("reconcile_votes", stdout=out)

        self.assertIn("2 records changed", out.getvalue())
        self.assertEqual(self.store.all_topics()[0].votes, 1)

    def test_management_command_respects_lock(self):
        self.add_member("a@example.com")
        self.add_topic(upvoted_by=["a@example.com"], votes=3)

        with cache_lock(RECONCILE_LOCK, "worker") as acquired:
            self.assertTrue(acquired)
            with self.assertRaises(CommandError):
                call_command("reconcile_votes", stdout=StringIO())
            self.assertEqual(self.store.all_topics()[0].votes, 3)

            out = StringIO()
            call_command("reconcile_votes", "--force", stdout=out)
        self.assertIn("2 records changed", out.getvalue())


class MemoryReconciliationTests(MemoryStoreMixin, ReconciliationTests, TestCase):
    pass
