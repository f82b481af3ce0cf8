from typing import Any, Dict, List, Optional

import requests
from requests import RequestException

from otpas.config.settings import settings
from otpas.core.evaluations import (
    EvaluationRecord,
    StudentCourseGroup,
    aggregate_evaluations,
    parse_evaluations,
)
from otpas.logging_config import get_logger


log = get_logger(__name__)


class EvaluationServiceError(Exception):
    pass


class EvaluationService:
    EVALUATIONS_PATH = "/api/instructor/evaluations"

    def __init__(self, base_url: str, api_token: str = "", timeout: float = 15.0) -> None:
        if not base_url:
            raise EvaluationServiceError("Missing OTPAS_API_BASE_URL in environment")
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "EvaluationService":
        return cls(settings.api_base_url, settings.api_token, settings.request_timeout)

    def list_evaluations(self) -> List[EvaluationRecord]:
        data = self._get(self.EVALUATIONS_PATH)
        if isinstance(data, dict):
            payloads = data.get("evaluations") or []
        elif isinstance(data, list):
            payloads = data
        else:
            raise EvaluationServiceError("UNEXPECTED_EVALUATIONS_PAYLOAD")

        if not isinstance(payloads, list):
            raise EvaluationServiceError("UNEXPECTED_EVALUATIONS_PAYLOAD")

        records = parse_evaluations(payloads)
        log.info("Fetched %d evaluations (%d usable)", len(payloads), len(records))
        return records

    def grouped_evaluations(self) -> Dict[str, StudentCourseGroup]:
        return aggregate_evaluations(self.list_evaluations())

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            res = requests.get(url, headers=self._headers(), timeout=self.timeout)
        except RequestException as exc:
            raise EvaluationServiceError("EVALUATION_SERVICE_UNAVAILABLE") from exc
        try:
            data = res.json()
        except ValueError:
            raise EvaluationServiceError("EVALUATION_SERVICE_UNAVAILABLE")

        if res.status_code >= 400:
            message: Optional[str] = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            raise EvaluationServiceError(str(message or f"HTTP_{res.status_code}"))

        return data
