"""
Tests for answer autosave, submission and time-limit enforcement.
"""
from django.test import SimpleTestCase

from exams.choices import QuestionType
from exams.exceptions import Conflict, NotFound, TimeExpired, ValidationError
from exams.repositories.base import Identity
from exams.services import AnswerPayload
from .fakes import Harness, exam_meta, question, snapshot


class AnswerStoreTests(SimpleTestCase):

    def setUp(self):
        self.h = Harness()
        self.attempt_id = self.h.engine.attempts.start_attempt('demo-exam', Identity(email='a@example.com'))['id']
        self.store = self.h.engine.answers

    def test_save_is_full_replacement(self):
        self.store.save_answer(self.attempt_id, 3, AnswerPayload(text_value='first'))
        saved = self.store.save_answer(self.attempt_id, 3, AnswerPayload(structured_value={'x': 1}))

        self.assertIsNone(saved.text_value)
        self.assertEqual(saved.structured_value, {'x': 1})
        self.assertEqual(len(self.h.answers.list_for_attempt(self.attempt_id)), 1)

    def test_duplicate_selections_collapse(self):
        saved = self.store.save_answer(self.attempt_id, 2, AnswerPayload(selected_option_ids=(21, 21, 22)))
        self.assertEqual(saved.selected_option_ids, frozenset({21, 22}))

    def test_unknown_question(self):
        with self.assertRaises(NotFound):
            self.store.save_answer(self.attempt_id, 999, AnswerPayload(text_value='x'))

    def test_unknown_attempt(self):
        with self.assertRaises(NotFound):
            self.store.save_answer(999, 1, AnswerPayload(selected_option_ids=(11,)))

    def test_option_from_another_question_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(21,)))

    def test_single_choice_accepts_one_option(self):
        with self.assertRaises(ValidationError):
            self.store.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(11, 12)))

    def test_selections_on_text_question_are_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.save_answer(self.attempt_id, 3, AnswerPayload(selected_option_ids=(11,)))

    def test_ordering_payload_must_be_a_list(self):
        for value in ('foo', {'order': 'foo'}, {'x': 1}, 3):
            with self.assertRaises(ValidationError) as ctx:
                self.store.save_answer(self.attempt_id, 4, AnswerPayload(structured_value=value))
            self.assertEqual(ctx.exception.fields['field'], 'structured_value')

        self.store.save_answer(self.attempt_id, 4, AnswerPayload(structured_value=[3, 1, 2]))
        saved = self.store.save_answer(self.attempt_id, 4, AnswerPayload(structured_value={'order': [1, 2, 3]}))
        self.assertEqual(saved.structured_value, {'order': [1, 2, 3]})

    def test_matching_payload_must_be_a_mapping(self):
        h = Harness(snap=snapshot((
            question(7, QuestionType.MATCHING, 2, correct_answer={'matches': {'a': '1'}}),
        )))
        attempt_id = h.engine.attempts.start_attempt('demo-exam', Identity(email='a@example.com'))['id']
        for value in ('foo', ['a', '1'], {'matches': ['a']}):
            with self.assertRaises(ValidationError):
                h.engine.answers.save_answer(attempt_id, 7, AnswerPayload(structured_value=value))

        h.engine.answers.save_answer(attempt_id, 7, AnswerPayload(structured_value={'a': '1'}))
        h.engine.answers.save_answer(attempt_id, 7, AnswerPayload(structured_value={'matches': {'a': '1'}}))

    def test_save_after_submit_conflicts(self):
        self.h.engine.submissions.submit(self.attempt_id)
        with self.assertRaises(Conflict):
            self.store.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(11,)))


class SubmissionTests(SimpleTestCase):

    def setUp(self):
        self.h = Harness()
        self.attempt_id = self.h.engine.attempts.start_attempt('demo-exam', Identity(email='a@example.com'))['id']

    def test_submit_records_time_spent(self):
        self.h.clock.advance(minutes=4, seconds=5)
        outcome = self.h.engine.submissions.submit(self.attempt_id)
        self.assertEqual(outcome.time_spent, 245)

        attempt = self.h.attempts.get(self.attempt_id)
        self.assertEqual(attempt.completed_at, self.h.clock.now())
        self.assertTrue(attempt.is_completed)

    def test_double_submit_conflicts_and_keeps_first_result(self):
        self.h.engine.answers.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(11,)))
        first = self.h.engine.submissions.submit(self.attempt_id)
        self.h.clock.advance(minutes=1)

        with self.assertRaises(Conflict):
            self.h.engine.submissions.submit(self.attempt_id)
        attempt = self.h.attempts.get(self.attempt_id)
        self.assertEqual(attempt.score, first.score)
        self.assertEqual(attempt.time_spent, first.time_spent)

    def test_lost_compare_and_set_conflicts(self):
        self.h.attempts.mark_completed(self.attempt_id, self.h.clock.now(), 0)
        with self.assertRaises(Conflict):
            self.h.engine.submissions.submit(self.attempt_id)

    def test_manual_exam_is_not_graded_on_submit(self):
        self.h.set_meta(auto_grade=False)
        outcome = self.h.engine.submissions.submit(self.attempt_id)

        data = outcome.as_dict()
        self.assertFalse(data['auto_graded'])
        self.assertNotIn('score', data)
        self.assertIn('graded manually', data['message'])
        self.assertIsNone(self.h.attempts.get(self.attempt_id).score)

    def test_auto_graded_outcome(self):
        self.h.engine.answers.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(11,)))
        data = self.h.engine.submissions.submit(self.attempt_id).as_dict()
        self.assertTrue(data['completed'])
        self.assertEqual(data['score'], 1.0)
        self.assertEqual(data['percentage'], 10.0)
        self.assertFalse(data['passed'])


class TimeLimitTests(SimpleTestCase):

    def setUp(self):
        self.h = Harness(meta=exam_meta(time_limit=10))
        self.attempt_id = self.h.engine.attempts.start_attempt('demo-exam', Identity(email='a@example.com'))['id']
        self.h.engine.answers.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(11,)))

    def test_save_at_deadline_is_still_accepted(self):
        self.h.clock.advance(minutes=10)
        saved = self.h.engine.answers.save_answer(self.attempt_id, 2, AnswerPayload(selected_option_ids=(21,)))
        self.assertEqual(saved.question_id, 2)

    def test_save_after_deadline_forces_submission(self):
        self.h.clock.advance(minutes=10, seconds=1)

        with self.assertRaises(TimeExpired) as ctx:
            self.h.engine.answers.save_answer(self.attempt_id, 2, AnswerPayload(selected_option_ids=(21,)))

        self.assertEqual(ctx.exception.status_code, 410)
        attempt = self.h.attempts.get(self.attempt_id)
        self.assertTrue(attempt.is_completed)
        # Graded with what was saved before the deadline only.
        self.assertEqual(attempt.score, 1.0)
        self.assertEqual([a.question_id for a in self.h.answers.list_for_attempt(self.attempt_id)], [1])

    def test_later_save_reports_conflict(self):
        self.h.clock.advance(minutes=11)
        with self.assertRaises(TimeExpired):
            self.h.engine.answers.save_answer(self.attempt_id, 2, AnswerPayload(selected_option_ids=(21,)))
        with self.assertRaises(Conflict):
            self.h.engine.answers.save_answer(self.attempt_id, 2, AnswerPayload(selected_option_ids=(21,)))

    def test_time_expired_carries_deadline(self):
        self.h.clock.advance(minutes=30)
        with self.assertRaises(TimeExpired) as ctx:
            self.h.engine.answers.save_answer(self.attempt_id, 1, AnswerPayload(selected_option_ids=(12,)))
        body = ctx.exception.as_dict()
        self.assertEqual(body['error'], 'time_expired')
        self.assertEqual(body['deadline'], '2024-05-01T09:10:00+00:00')
