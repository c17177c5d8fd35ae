"""Quiz submission, adaptive difficulty and the review queue."""

import logging
from typing import Any, Dict, List

from openai import OpenAIError
from sqlalchemy.orm import Session

from app.core import ai_service
from app.core.exceptions import AuthorizationError, NotFoundError, StudyFlowError, ValidationError
from app.crud import progress_crud, quiz_crud, study_crud
from app.models.progress.learning_progress_model import Mood
from app.models.study.study_plan_model import Difficulty
from app.models.user.user_model import User
from app.schemas.study.study_schema import QuizSubmission

logger = logging.getLogger(__name__)

HARD_THRESHOLD = 85
MEDIUM_THRESHOLD = 60
GOOD_SCORE_THRESHOLD = 70
REVIEW_QUEUE_RESULTS = 20

EXPLANATION_FALLBACK = (
    "Sorry, no explanation could be generated for this question. "
    "Please review the module material again."
)


def difficulty_for_score(percentage: float) -> Difficulty:
    if percentage >= HARD_THRESHOLD:
        return Difficulty.HARD
    if percentage >= MEDIUM_THRESHOLD:
        return Difficulty.MEDIUM
    return Difficulty.EASY


def _is_wrong(answer: Dict[str, Any]) -> bool:
    return answer.get("is_correct") is False


def _needs_explanation(answer: Dict[str, Any]) -> bool:
    # A missing flag counts as wrong; unanswered questions are skipped.
    if answer.get("is_correct"):
        return False
    return all(answer.get(key) for key in ("question", "user_answer", "correct_answer"))


class QuizService:
    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    def submit(self, submission: QuizSubmission) -> Dict[str, Any]:
        """Record a result and retune the difficulty of the modules that follow."""

        if submission.score > submission.total_questions:
            raise ValidationError("Score cannot exceed the number of questions")

        module = study_crud.get_module(self.db, submission.module_id)
        if module is None:
            raise NotFoundError("Module not found")
        plan = study_crud.get_plan(self.db, module.plan_id)
        if plan is None or plan.user_id != self.user.id:
            raise AuthorizationError("You do not have access to this module")

        answers = [answer.model_dump() for answer in submission.answers]
        percentage = submission.score / submission.total_questions * 100
        new_difficulty = difficulty_for_score(percentage)
        good_score = percentage >= GOOD_SCORE_THRESHOLD

        try:
            result = quiz_crud.add_quiz_result(
                self.db,
                user_id=self.user.id,
                module_id=module.id,
                score=submission.score,
                total_questions=submission.total_questions,
                answers=answers,
                time_taken=submission.time_taken,
            )
            progress_crud.add_progress(
                self.db,
                user_id=self.user.id,
                plan_id=plan.id,
                duration_minutes=submission.time_taken // 60,
                topic=f"Quiz module {module.id}",
                evaluation={
                    "score": submission.score,
                    "total_questions": submission.total_questions,
                    "percentage": round(percentage, 2),
                },
                focus_score=8 if good_score else 5,
                mood=Mood.HAPPY if good_score else Mood.NEUTRAL,
                commit=False,
            )
            study_crud.apply_difficulty_after(self.db, plan.id, module.order, new_difficulty)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Quiz %s saved for module %s (%.0f%%), next modules set to %s",
            result.id, module.id, percentage, new_difficulty.value,
        )

        explanations = []
        for answer in answers:
            if not _needs_explanation(answer):
                continue
            explanations.append(
                {
                    "question": answer["question"],
                    "user_answer": answer["user_answer"],
                    "correct_answer": answer["correct_answer"],
                    "explanation": self._explain(module.content, answer),
                }
            )

        return {
            "message": "Quiz result saved",
            "quiz_id": result.id,
            "new_difficulty": new_difficulty.value,
            "mistake_explanations": explanations,
        }

    def _explain(self, module_content: str, answer: Dict[str, Any]) -> str:
        try:
            return ai_service.explain_mistake(
                self.db,
                self.user,
                module_content,
                answer["question"],
                answer.get("user_answer"),
                answer.get("correct_answer"),
            )
        except (StudyFlowError, OpenAIError) as exc:
            logger.warning("Mistake explanation failed for user %s: %s", self.user.id, exc)
            return EXPLANATION_FALLBACK

    def review_queue(self) -> List[Dict[str, Any]]:
        queue = []
        for result in quiz_crud.recent_quiz_results(self.db, self.user.id, limit=REVIEW_QUEUE_RESULTS):
            for answer in result.answers or []:
                if isinstance(answer, dict) and _is_wrong(answer):
                    queue.append(
                        {
                            "module_id": result.module_id,
                            "question": answer.get("question"),
                            "user_answer": answer.get("user_answer"),
                            "correct_answer": answer.get("correct_answer"),
                            "time_taken": result.time_taken,
                        }
                    )
        return queue
