import unittest

from job_tracker import statuses as st


class StatusVocabularyTests(unittest.TestCase):
    def test_every_status_has_one_category(self):
        self.assertEqual(len(st.ALL_STATUSES), 23)
        for status in st.ALL_STATUSES:
            flags = [st.is_failed_status(status), st.is_in_progress_status(status), st.is_passed_status(status)]
            self.assertEqual(sum(flags), 1, status)

    def test_display_helpers(self):
        self.assertEqual(st.status_color(st.REJECTED), "red")
        self.assertEqual(st.status_color(st.HR_INTERVIEW), "blue")
        self.assertEqual(st.status_color(st.OFFER_ACCEPTED), "green")
        self.assertEqual(st.status_color("whatever"), "default")
        self.assertEqual(st.status_category(st.WRITTEN_TEST_FAIL), "已失败")
        self.assertEqual(st.status_category(st.APPLIED), "进行中")
        self.assertEqual(st.status_category(st.OFFER_RECEIVED), "已通过")
        self.assertEqual(st.status_icon(st.OFFER_WAITING), "GiftOutlined")
        self.assertEqual(st.status_icon(None), "QuestionCircleOutlined")

    def test_success_predicate_matches_offer_and_pass_statuses(self):
        for status in (st.OFFER_RECEIVED, st.OFFER_ACCEPTED, st.PROCESS_FINISHED, st.FIRST_PASS, st.HR_PASS):
            self.assertTrue(st.is_passed_status(status), status)
        for status in (st.REJECTED, st.SECOND_FAIL, st.THIRD_INTERVIEW, None):
            self.assertFalse(st.is_passed_status(status), status)

    def test_transition_helpers(self):
        self.assertTrue(st.is_backward_transition(st.SECOND_INTERVIEW, st.FIRST_INTERVIEW))
        self.assertFalse(st.is_backward_transition(st.FIRST_INTERVIEW, st.FIRST_PASS))
        self.assertFalse(st.is_backward_transition(st.APPLIED, st.OFFER_RECEIVED))
        self.assertTrue(st.is_implicit_direct_transition(st.FIRST_INTERVIEW, st.SECOND_INTERVIEW))
        self.assertFalse(st.is_implicit_direct_transition(st.FIRST_INTERVIEW, st.THIRD_INTERVIEW))
        self.assertTrue(st.is_terminal_status(st.HR_FAIL))
        self.assertFalse(st.is_terminal_status(st.OFFER_RECEIVED))
        self.assertGreater(st.stage_rank(st.OFFER_ACCEPTED), st.stage_rank(st.HR_PASS))


if __name__ == "__main__":
    unittest.main()
