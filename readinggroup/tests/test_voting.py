import threading
from unittest import mock

from django.test import TestCase

from readinggroup.exceptions import (
    AlreadyVoted,
    MemberNotFound,
    TopicNotFound,
    Unauthenticated,
)
from readinggroup.reconciliation import reconcile_vote_state
from readinggroup.voting import apply_member_upvote, cast_upvote

from .utils import MemoryStoreMixin, OrmStoreMixin, StoreHelpersMixin, make_principal


class VotingTests(StoreHelpersMixin):
    def setUp(self):
        super().setUp()
        self.voter = make_principal("voter@example.com")
        self.topic_id = self.add_topic("Distributed systems").id

    def test_upvote_updates_topic_and_member(self):
        with self.run_on_commit():
            topic = cast_upvote(self.voter, self.topic_id, self.store)

        self.assertEqual(topic.votes, 1)
        self.assertEqual(topic.upvoted_by, ["voter@example.com"])
        self.assertEqual(self.topic(self.topic_id).votes, 1)
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [self.topic_id])

    def test_second_upvote_is_rejected_without_changes(self):
        with self.run_on_commit():
            cast_upvote(self.voter, self.topic_id, self.store)

        with self.assertRaises(AlreadyVoted):
            cast_upvote(self.voter, self.topic_id, self.store)

        topic = self.topic(self.topic_id)
        self.assertEqual(topic.votes, 1)
        self.assertEqual(topic.upvoted_by, ["voter@example.com"])
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [self.topic_id])

    def test_legacy_id_reference_counts_as_existing_vote(self):
        member = self.add_member("voter@example.com")
        topic = self.topic(self.topic_id)
        topic.upvoted_by = [str(member.id)]
        topic.votes = 1
        self.store.save_topic(topic)

        with self.assertRaises(AlreadyVoted):
            cast_upvote(self.voter, self.topic_id, self.store)
        self.assertEqual(self.topic(self.topic_id).votes, 1)

    def test_requires_principal(self):
        with self.assertRaises(Unauthenticated):
            cast_upvote(None, self.topic_id, self.store)
        self.assertEqual(self.topic(self.topic_id).votes, 0)

    def test_missing_topic(self):
        with self.assertRaises(TopicNotFound):
            cast_upvote(self.voter, self.topic_id + 100, self.store)
        with self.assertRaises(MemberNotFound):
            self.member("voter@example.com")

    def test_rejected_vote_creates_no_member(self):
        newcomer = make_principal("newcomer@example.com")
        topic = self.topic(self.topic_id)
        topic.upvoted_by.append("newcomer@example.com")
        self.store.save_topic(topic)

        with self.assertRaises(AlreadyVoted):
            cast_upvote(newcomer, self.topic_id, self.store)
        with self.assertRaises(MemberNotFound):
            self.member("newcomer@example.com")

    def test_vote_count_follows_voter_list(self):
        topic = self.topic(self.topic_id)
        topic.upvoted_by = ["earlier@example.com"]
        topic.votes = 5
        self.store.save_topic(topic)

        with self.run_on_commit():
            topic = cast_upvote(self.voter, self.topic_id, self.store)
        self.assertEqual(topic.votes, 2)
        self.assertEqual(self.topic(self.topic_id).votes, 2)

    def test_lost_member_update_is_healed_by_reconciliation(self):
        with mock.patch("readinggroup.voting.queue_member_upvote") as queue:
            with self.run_on_commit():
                cast_upvote(self.voter, self.topic_id, self.store)
        queue.assert_called_once_with("voter@example.com", self.topic_id)

        # The member side lags, but the topic side still blocks a second vote
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [])
        with self.assertRaises(AlreadyVoted):
            cast_upvote(self.voter, self.topic_id, self.store)

        reconcile_vote_state(self.store)
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [self.topic_id])
        self.assertEqual(self.topic(self.topic_id).votes, 1)

    def test_queue_failure_does_not_fail_the_vote(self):
        with mock.patch(
            "readinggroup.voting.get_registered_task",
            side_effect=RuntimeError("broker down"),
        ):
            with self.run_on_commit():
                topic = cast_upvote(self.voter, self.topic_id, self.store)
        self.assertEqual(topic.votes, 1)
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [])

    def test_apply_member_upvote_is_idempotent(self):
        with mock.patch("readinggroup.voting.queue_member_upvote"):
            with self.run_on_commit():
                cast_upvote(self.voter, self.topic_id, self.store)

        self.assertTrue(apply_member_upvote("voter@example.com", self.topic_id, self.store))
        self.assertFalse(
            apply_member_upvote("voter@example.com", self.topic_id, self.store)
        )
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [self.topic_id])

    def test_apply_member_upvote_skips_deleted_topic(self):
        self.add_member("voter@example.com")
        self.store.delete_topics()
        self.assertFalse(
            apply_member_upvote("voter@example.com", self.topic_id, self.store)
        )
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [])

    def test_apply_member_upvote_requires_topic_side_vote(self):
        self.add_member("voter@example.com")
        self.assertFalse(
            apply_member_upvote("voter@example.com", self.topic_id, self.store)
        )
        self.assertEqual(self.member("voter@example.com").upvoted_topics, [])

    def test_apply_member_upvote_without_member(self):
        self.assertFalse(
            apply_member_upvote("ghost@example.com", self.topic_id, self.store)
        )


class OrmVotingTests(OrmStoreMixin, VotingTests, TestCase):
    pass


class MemoryVotingTests(MemoryStoreMixin, VotingTests, TestCase):
    def test_concurrent_upvotes_are_all_counted(self):
        voters = [make_principal(f"voter{i}@example.com") for i in range(10)]
        errors = []

        def vote(principal):
            try:
                cast_upvote(principal, self.topic_id, self.store)
            except Exception as err:  # pragma: no cover
                errors.append(err)

        threads = [threading.Thread(target=vote, args=(p,)) for p in voters]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        topic = self.topic(self.topic_id)
        self.assertEqual(topic.votes, 10)
        self.assertEqual(len(set(topic.upvoted_by)), 10)
        for principal in voters:
            self.assertEqual(
                self.member(principal.identity).upvoted_topics, [self.topic_id]
            )

    def test_concurrent_upvotes_by_one_voter_count_once(self):
        outcomes = []

        def vote():
            try:
                cast_upvote(self.voter, self.topic_id, self.store)
                outcomes.append("ok")
            except AlreadyVoted:
                outcomes.append("already")

        threads = [threading.Thread(target=vote) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ["already"] * 4 + ["ok"])
        self.assertEqual(self.topic(self.topic_id).votes, 1)
