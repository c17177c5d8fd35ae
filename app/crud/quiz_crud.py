from sqlalchemy.orm import Session

from app.models.progress.learning_progress_model import QuizResult


def add_quiz_result(
    db: Session,
    *,
    user_id: int,
    module_id: int,
    score: int,
    total_questions: int,
    answers: list,
    time_taken: int,
) -> QuizResult:
    """Stage a quiz result; the caller commits."""
    result = QuizResult(
        user_id=user_id,
        module_id=module_id,
        score=score,
        total_questions=total_questions,
        answers=answers,
        time_taken=time_taken,
    )
    db.add(result)
    db.flush()
    return result


def recent_quiz_results(db: Session, user_id: int, limit: int = 20) -> list[QuizResult]:
    return (
        db.query(QuizResult)
        .filter(QuizResult.user_id == user_id)
        .order_by(QuizResult.created_at.desc(), QuizResult.id.desc())
        .limit(limit)
        .all()
    )
