"""
Scoring engine - turns an attempt's answers into a result summary.

Pure and deterministic: same answers, questions and total marks always give
the same result.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import AnswerRecord, Question
from ..utils import format_percentage

DEFAULT_MARKS = 1


@dataclass(frozen=True)
class ScoreSummary:
    answers: List[AnswerRecord] = field(default_factory=list)
    total_score: float = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    unattempted: int = 0
    percentage: float = 0.0

    def as_update(self) -> Dict:
        """Fields to write back onto the attempt document."""
        return {
            "answers": [a.model_dump() for a in self.answers],
            "total_score": self.total_score,
            "correct_answers": self.correct_answers,
            "incorrect_answers": self.incorrect_answers,
            "unattempted": self.unattempted,
            "percentage": self.percentage,
        }


def score_answer(answer: AnswerRecord, question: Optional[Question]) -> AnswerRecord:
    """Classify a single answer; unresolved questions score as unattempted."""
    if not answer.selected_answer or question is None:
        return AnswerRecord(question_id=answer.question_id, selected_answer=answer.selected_answer)

    if answer.selected_answer == question.correct_answer:
        return AnswerRecord(
            question_id=answer.question_id,
            selected_answer=answer.selected_answer,
            is_correct=True,
            marks_obtained=question.marks or DEFAULT_MARKS,
        )

    return AnswerRecord(
        question_id=answer.question_id,
        selected_answer=answer.selected_answer,
        is_correct=False,
        marks_obtained=0,
    )


def score_attempt(
    answers: List[AnswerRecord],
    questions: Dict[str, Question],
    total_marks: float
) -> ScoreSummary:
    """
    Score a list of answers.

    Args:
        answers: Answer slots in exam order
        questions: Question lookup by question_id
        total_marks: The exam's total marks (percentage denominator)

    Returns:
        ScoreSummary with re-scored answers, counts, total score and the
        percentage rounded to two decimals (0 when total_marks is 0)
    """
    scored = []
    correct = incorrect = unattempted = 0
    total_score = 0

    for answer in answers:
        question = questions.get(answer.question_id)
        result = score_answer(answer, question)
        scored.append(result)

        if not answer.selected_answer or question is None:
            unattempted += 1
        elif result.is_correct:
            correct += 1
            total_score += result.marks_obtained
        else:
            incorrect += 1

    return ScoreSummary(
        answers=scored,
        total_score=total_score,
        correct_answers=correct,
        incorrect_answers=incorrect,
        unattempted=unattempted,
        percentage=format_percentage(total_score, total_marks),
    )
