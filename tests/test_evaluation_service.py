import unittest
from unittest import mock

from requests import ConnectionError as RequestsConnectionError

from otpas.services.evaluation_service import EvaluationService, EvaluationServiceError


def _response(status_code=200, payload=None, json_error=False):
    res = mock.Mock()
    res.status_code = status_code
    if json_error:
        res.json.side_effect = ValueError("not json")
    else:
        res.json.return_value = payload
    return res


EVALUATIONS = [
    {
        "id": 1,
        "student_name": "Abebe Kebede",
        "course_code": "CS101",
        "course_title": "Intro to Programming",
        "evaluation_type": "quiz",
        "score": "4",
        "grade": "A",
        "created_at": "2024-03-02T09:00:00Z",
        "cumulative_total": "72",
    },
    {
        "id": 2,
        "student_name": "Abebe Kebede",
        "course_code": "CS101",
        "course_title": "Intro to Programming",
        "evaluation_type": "mid_exam",
        "score": 20,
        "grade": "B",
        "created_at": "2024-03-01T09:00:00Z",
    },
]


class EvaluationServiceTests(unittest.TestCase):
    def setUp(self):
        self.service = EvaluationService("http://api.example.test/", api_token="secret", timeout=5)

    def test_requires_base_url(self):
        with self.assertRaises(EvaluationServiceError):
            EvaluationService("")

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_list_evaluations(self, get):
        get.return_value = _response(payload={"success": True, "evaluations": EVALUATIONS})
        records = self.service.list_evaluations()

        self.assertEqual([r.id for r in records], [1, 2])
        self.assertEqual(records[0].score, 4.0)
        get.assert_called_once_with(
            "http://api.example.test/api/instructor/evaluations",
            headers={"Accept": "application/json", "Authorization": "Bearer secret"},
            timeout=5,
        )

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_accepts_bare_list(self, get):
        get.return_value = _response(payload=EVALUATIONS)
        self.assertEqual(len(self.service.list_evaluations()), 2)

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_grouped_evaluations(self, get):
        get.return_value = _response(payload={"evaluations": EVALUATIONS + [EVALUATIONS[0]]})
        groups = self.service.grouped_evaluations()

        group = groups["Abebe Kebede|CS101"]
        self.assertEqual([r.id for r in group.all_evaluations], [1, 2])
        self.assertEqual(group.cumulative_total, 72.0)

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_http_error(self, get):
        get.return_value = _response(status_code=403, payload={"message": "Access denied"})
        with self.assertRaisesRegex(EvaluationServiceError, "Access denied"):
            self.service.list_evaluations()

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_transport_error(self, get):
        get.side_effect = RequestsConnectionError("boom")
        with self.assertRaisesRegex(EvaluationServiceError, "EVALUATION_SERVICE_UNAVAILABLE"):
            self.service.list_evaluations()

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_non_json_body(self, get):
        get.return_value = _response(json_error=True)
        with self.assertRaises(EvaluationServiceError):
            self.service.list_evaluations()

    @mock.patch("otpas.services.evaluation_service.requests.get")
    def test_unexpected_payload(self, get):
        get.return_value = _response(payload="nope")
        with self.assertRaisesRegex(EvaluationServiceError, "UNEXPECTED_EVALUATIONS_PAYLOAD"):
            self.service.list_evaluations()


if __name__ == "__main__":
    unittest.main()
