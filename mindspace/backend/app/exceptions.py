"""
Errors raised by the stress assessment engine.

Client errors (bad sample size, incomplete or invalid answers) are safe to
show to the user. Configuration faults (bank or scoring policy authoring bugs)
are internal and should be logged, not echoed back.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StressAssessmentError(Exception):
    """Base exception for all stress assessment errors"""

    client_error = True

    def __init__(
        self,
        message: str,
        code: str = "ASSESSMENT_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidSampleSize(StressAssessmentError):
    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Sample size must be between 0 and {available}, got {requested}.",
            code="INVALID_SAMPLE_SIZE",
            details={"requested": requested, "available": available},
        )


class IncompleteAssessment(StressAssessmentError):
    def __init__(self, missing_ids):
        missing = list(missing_ids)
        super().__init__(
            f"Missing answers for questions: {', '.join(missing)}",
            code="INCOMPLETE_ASSESSMENT",
            details={"missing_question_ids": missing},
        )


class InvalidAnswer(StressAssessmentError):
    def __init__(self, message: str, question_id: Optional[str] = None):
        super().__init__(
            message,
            code="INVALID_ANSWER",
            details={"question_id": question_id} if question_id else {},
        )


class UnknownQuestion(StressAssessmentError):
    def __init__(self, question_id: str):
        super().__init__(
            f"Unknown question ID: {question_id}",
            code="UNKNOWN_QUESTION",
            details={"question_id": question_id},
        )


# ============================================
# Configuration faults
# ============================================

class ConfigurationError(StressAssessmentError):
    """Static assessment data is malformed"""

    client_error = False


class BankValidationError(ConfigurationError):
    def __init__(self, message: str):
        super().__init__(message, code="INVALID_QUESTION_BANK")


class ClassificationGap(ConfigurationError):
    def __init__(self, score: int, sample_size: Optional[int] = None):
        details: Dict[str, Any] = {"score": score}
        if sample_size is not None:
            details["sample_size"] = sample_size
        super().__init__(
            f"No scoring range matches score {score}",
            code="CLASSIFICATION_GAP",
            details=details,
        )


class PolicyOverlap(ConfigurationError):
    def __init__(self, message: str):
        super().__init__(message, code="POLICY_OVERLAP")
